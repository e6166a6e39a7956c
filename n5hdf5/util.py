import enum
import json
import numbers
import os
from typing import Any, Optional, Tuple, Union

import h5py
import numpy as np
from asciitree import BoxStyle, LeftAligned
from asciitree.traversal import Traversal
from numcodecs.compat import ensure_text


def _json_default(o: Any) -> Any:
    # numpy values, enums and plain objects do not serialize on their own
    if isinstance(o, np.ndarray):
        return o.tolist()
    if isinstance(o, np.generic):
        return o.item()
    if isinstance(o, enum.Enum):
        return o.value
    if hasattr(o, 'as_dict'):
        return o.as_dict()
    if hasattr(o, '__dict__'):
        return {k: v for k, v in vars(o).items() if not k.startswith('_')}
    raise TypeError(f'Object of type {type(o).__name__} is not JSON serializable')


def json_dumps(o: Any) -> str:
    """Write JSON in a consistent, compact way."""
    return json.dumps(o, sort_keys=True, ensure_ascii=False, separators=(',', ':'),
                      default=_json_default)


def json_loads(s: Union[str, bytes]) -> Any:
    """Read JSON in a consistent way."""
    return json.loads(ensure_text(s, 'utf-8'))


def normalize_shape(shape) -> Tuple[int, ...]:
    """Convenience function to normalize a `dimensions`, `blockSize` or grid
    position argument."""

    if shape is None:
        raise TypeError('shape is None')

    # handle 1D convenience form
    if isinstance(shape, numbers.Integral):
        shape = (int(shape),)

    # normalize
    shape = tuple(int(s) for s in shape)
    return shape


def normalize_storage_path(path: Union[str, bytes, None]) -> str:

    # handle bytes
    if isinstance(path, bytes):
        path = str(path, 'ascii')

    # ensure str
    if path is not None and not isinstance(path, str):
        path = str(path)

    if path:

        # convert backslash to forward slash
        path = path.replace('\\', '/')

        # collapse repeated slashes, drop leading and trailing ones
        segments = [s for s in path.split('/') if s]

        # don't allow path segments with just '.' or '..'
        if any(s in {'.', '..'} for s in segments):
            raise ValueError("path containing '.' or '..' segment not allowed")

        path = '/'.join(segments)

    else:
        path = ''

    return path


def hdf5_path(path: Optional[str]) -> str:
    """Absolute HDF5 object name for a normalized storage path."""
    return '/' + normalize_storage_path(path)


def is_hdf5(path) -> bool:
    """Return True if `path` is an existing HDF5 file."""
    path = os.fspath(path)
    if not os.path.isfile(path):
        return False
    return h5py.is_hdf5(path)


class TreeNode(object):

    def __init__(self, obj, depth=0, level=None):
        self.obj = obj
        self.depth = depth
        self.level = level

    def get_children(self):
        if hasattr(self.obj, 'values'):
            if self.level is None or self.depth < self.level:
                depth = self.depth + 1
                return [TreeNode(o, depth=depth, level=self.level)
                        for o in self.obj.values()]
        return []

    def get_text(self):
        name = self.obj.name.split('/')[-1] or '/'
        if hasattr(self.obj, 'shape'):
            shape = tuple(reversed(self.obj.shape))
            name += f' {shape} {self.obj.dtype}'
        return name


class TreeTraversal(Traversal):

    def get_children(self, node):
        return node.get_children()

    def get_root(self, tree):
        return tree

    def get_text(self, node):
        return node.get_text()


# asciitree box drawing characters
_ascii_gfx = dict(UP_AND_RIGHT='+', HORIZONTAL='-', VERTICAL='|', VERTICAL_AND_RIGHT='+')
_unicode_gfx = dict(UP_AND_RIGHT='└', HORIZONTAL='─', VERTICAL='│', VERTICAL_AND_RIGHT='├')


class TreeViewer(object):
    """Plain text rendering of an HDF5 group hierarchy. Dataset shapes are
    shown in N5 axis order. ``bytes()`` draws with ASCII characters,
    ``str()`` with box drawing characters."""

    def __init__(self, group, level=None):
        self.group = group
        self.level = level

    def render(self, gfx) -> str:
        drawer = LeftAligned(
            traverse=TreeTraversal(),
            draw=BoxStyle(gfx=gfx, horiz_len=2, label_space=1, indent=1)
        )
        return drawer(TreeNode(self.group, level=self.level))

    def __bytes__(self):
        return self.render(_ascii_gfx).encode()

    def __str__(self):
        return self.render(_unicode_gfx)

    __repr__ = __str__

"""Attributes of groups and datasets, stored in one of two places.

Values HDF5 can represent natively (numbers, booleans, strings and one or
two dimensional arrays of those) are written as typed HDF5 attributes.
Everything else is merged into a JSON document kept as a string attribute
under :data:`~n5hdf5.meta.N5_JSON_ROOT_KEY`. Reads consult the native
attribute first, so a native attribute shadows a JSON entry of the same name.

Keys may be attribute paths into the JSON document, e.g. ``'a/b'`` or
``'a[0]/c'``. The keys ``''``, ``'/'`` and ``'N5_JSON_ROOT'`` all denote the
whole document.

A native string that is itself valid JSON, like ``'{     }'``, cannot be told
apart from a structured value once it goes through :meth:`AttributeCodec.list`
or :meth:`AttributeCodec.as_dict`: both try a JSON parse first and only fall
back to the literal string when parsing fails. Request the value as ``str``
through :meth:`AttributeCodec.get` to read it back unchanged.
"""
import numbers
import re
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

import h5py
import numpy as np

from n5hdf5.errors import AttributeConversionError, PathNotFoundError
from n5hdf5.meta import (N5_JSON_ROOT_KEY, Compression, DataType, DatasetAttributes,
                         block_size_key, compression_key, data_type_key, dimensions_key,
                         normalize_compression, normalize_data_type)
from n5hdf5.util import hdf5_path, json_dumps, json_loads


class AttributeKind(Enum):
    NULL = 'null'
    SCALAR = 'scalar'
    STRING = 'string'
    ARRAY = 'array'
    MATRIX = 'matrix'
    DOCUMENT = 'document'


_int64 = np.iinfo(np.int64)


def _leaf_category(v) -> Optional[str]:
    if isinstance(v, (bool, np.bool_)):
        return 'b'
    if isinstance(v, (int, np.integer)):
        return 'i'
    if isinstance(v, (float, np.floating)):
        return 'f'
    if isinstance(v, str):
        return 's'
    return None


def _native_array(value) -> Optional[np.ndarray]:
    """Convert `value` to an array HDF5 can hold as an attribute, or None."""

    if isinstance(value, np.ndarray):
        if value.ndim not in (1, 2) or value.size == 0:
            return None
        if value.dtype.kind in 'biuf':
            return value
        if value.dtype.kind in 'UO' and all(isinstance(v, str) for v in value.flat):
            return np.array(value.tolist(), dtype=h5py.string_dtype())
        return None

    if not isinstance(value, (list, tuple)) or len(value) == 0:
        return None

    if all(isinstance(row, (list, tuple)) for row in value):
        if len({len(row) for row in value}) != 1 or len(value[0]) == 0:
            return None
        leaves = [v for row in value for v in row]
    else:
        leaves = list(value)

    categories = {_leaf_category(v) for v in leaves}
    if None in categories:
        return None
    if categories == {'s'}:
        return np.array(value, dtype=h5py.string_dtype())
    if categories == {'b'}:
        return np.array(value, dtype=bool)
    if categories <= {'i', 'f'}:
        a = np.array(value)
        # Python ints out of the int64 range end up as object arrays
        return a if a.dtype.kind in 'iuf' else None
    return None


def classify(value) -> AttributeKind:
    """Decide how an attribute value is stored."""
    if value is None:
        return AttributeKind.NULL
    if isinstance(value, str):
        return AttributeKind.STRING
    if isinstance(value, (bool, np.bool_, float, np.floating, np.integer)):
        return AttributeKind.SCALAR
    if isinstance(value, int):
        if _int64.min <= value <= _int64.max:
            return AttributeKind.SCALAR
        return AttributeKind.DOCUMENT
    a = _native_array(value)
    if a is None:
        return AttributeKind.DOCUMENT
    return AttributeKind.ARRAY if a.ndim == 1 else AttributeKind.MATRIX


_index_pattern = re.compile(r'\[(\d+)\]')
_segment_pattern = re.compile(r'^(.*?)((?:\[\d+\])*)$')

_root_keys = ('', '/', N5_JSON_ROOT_KEY)


def parse_attribute_path(key: str) -> List[Union[str, int]]:
    """Split an attribute path into object keys and array indices.

    An empty result denotes the whole JSON document.

    >>> parse_attribute_path('/a/b[1]/c')
    ['a', 'b', 1, 'c']

    """
    if key in _root_keys:
        return []
    tokens: List[Union[str, int]] = []
    for segment in key.split('/'):
        if segment in ('', '.'):
            continue
        if segment == '..':
            if tokens:
                tokens.pop()
            continue
        name, indices = _segment_pattern.match(segment).groups()
        if name:
            tokens.append(name)
        tokens.extend(int(i) for i in _index_pattern.findall(indices))
    return tokens


def is_attribute_path(tokens) -> bool:
    """True if `tokens` reach below the top level of the JSON document."""
    return len(tokens) > 1 or any(isinstance(t, int) for t in tokens)


def read_json_path(root, tokens):
    node = root
    for t in tokens:
        if isinstance(t, int):
            if not isinstance(node, list) or t >= len(node):
                return None
        elif not isinstance(node, dict) or t not in node:
            return None
        node = node[t]
    return node


def insert_json_path(root, tokens, value):
    """Return `root` with `value` placed at `tokens`, creating objects and
    arrays on the way. Intermediate nodes of the wrong type are replaced."""
    if not tokens:
        return value
    head, rest = tokens[0], tokens[1:]
    if isinstance(head, int):
        container = root if isinstance(root, list) else []
        while len(container) <= head:
            container.append(None)
        container[head] = insert_json_path(container[head], rest, value)
    else:
        container = root if isinstance(root, dict) else {}
        container[head] = insert_json_path(container.get(head), rest, value)
    return container


def remove_json_path(root, tokens):
    """Remove the node at `tokens` from `root` in place; returns whether
    something was removed."""
    if not tokens:
        return False
    parent = read_json_path(root, tokens[:-1])
    last = tokens[-1]
    if isinstance(last, int):
        if isinstance(parent, list) and last < len(parent):
            parent.pop(last)
            return True
    elif isinstance(parent, dict) and last in parent:
        del parent[last]
        return True
    return False


def _to_json(value):
    # plain JSON values, numpy scalars and arrays converted
    return json_loads(json_dumps(value))


def _parse_json(s: str):
    """Parse `s` as JSON, falling back to the literal string."""
    if not s:
        return s
    try:
        return json_loads(s)
    except ValueError:
        return s


def _parse_structured(s: str):
    """Parse `s` only if it holds a JSON object or array."""
    parsed = _parse_json(s)
    return parsed if isinstance(parsed, (dict, list)) else s


def _decode(v):
    if isinstance(v, bytes):
        return v.decode('utf-8')
    return v


def _type_name(cls) -> str:
    return getattr(cls, '__name__', repr(cls))


def _convert_number(key, value, cls):
    if isinstance(value, (bool, np.bool_)) or cls in (bool, np.bool_):
        if isinstance(value, (bool, np.bool_)) and cls in (bool, np.bool_):
            return cls(value)
        raise AttributeConversionError(key, type(value).__name__, _type_name(cls))
    if not isinstance(value, numbers.Number):
        raise AttributeConversionError(key, type(value).__name__, _type_name(cls))
    try:
        if cls is int:
            if isinstance(value, numbers.Integral) or float(value).is_integer():
                return int(value)
        elif cls is float:
            converted = float(value)
            if not isinstance(value, numbers.Integral) or int(converted) == value:
                return converted
        else:
            converted = cls(value)
            if converted == value or (value != value and converted != converted):
                return converted
    except (OverflowError, ValueError):
        pass
    raise AttributeConversionError(key, type(value).__name__, _type_name(cls))


_json_classes = (object, dict, list, 'json')


def convert(key: str, value, cls=None):
    """Convert a decoded attribute value into the representation `cls`.

    Numbers are only converted when no information is lost.
    """
    if value is None or cls is None or cls is object or cls == 'json':
        return value

    if cls is str:
        if isinstance(value, str):
            return value
    elif cls is np.ndarray:
        return np.asarray(value)
    elif cls in (list, tuple):
        if isinstance(value, np.ndarray):
            return cls(value.tolist())
        if isinstance(value, (list, tuple)):
            return cls(value)
    elif cls is dict:
        if isinstance(value, dict):
            return value
    elif cls is DataType:
        return normalize_data_type(value)
    elif cls is Compression:
        return normalize_compression(value)
    elif isinstance(cls, type) and issubclass(cls, (numbers.Number, np.number, np.bool_)):
        return _convert_number(key, value, cls)
    elif isinstance(value, cls):
        return value

    raise AttributeConversionError(key, type(value).__name__, _type_name(cls))


def _write_native(attrs, name: str, value, kind: AttributeKind):
    if kind is AttributeKind.STRING:
        attrs[name] = str(value)
    elif kind is AttributeKind.SCALAR:
        if isinstance(value, bool):
            value = np.bool_(value)
        elif isinstance(value, int):
            value = np.int64(value)
        elif isinstance(value, float):
            value = np.float64(value)
        attrs[name] = value
    else:
        a = _native_array(value)
        attrs.create(name, a, dtype=a.dtype)


def _read_native(attrs, name: str):
    value = attrs[name]
    if isinstance(value, h5py.Empty):
        return None
    if isinstance(value, np.ndarray):
        if value.dtype.kind in 'OSU':
            decoded = [_decode(v) for v in value.flat]
            return np.array(decoded, dtype=object).reshape(value.shape)
        return value
    if isinstance(value, np.generic):
        return value.item()
    return _decode(value)


class AttributeCodec(object):
    """Reads and writes attributes of the groups and datasets of an open
    HDF5 file.

    Parameters
    ----------
    h5file : h5py.File
    dataset_attributes : callable, optional
        ``dataset_attributes(path)`` returns the :class:`DatasetAttributes`
        of the dataset at `path`. Used for the keys ``dimensions``,
        ``blockSize``, ``dataType`` and ``compression`` of datasets, which
        are never stored as attributes.

    """

    def __init__(self, h5file: h5py.File, dataset_attributes=None):
        self.h5file = h5file
        self._dataset_attributes = dataset_attributes

    @staticmethod
    def _native_dataset_attributes(dataset: h5py.Dataset) -> DatasetAttributes:
        shape = dataset.shape
        chunks = dataset.chunks or shape
        return DatasetAttributes(shape[::-1], chunks[::-1], DataType.from_dtype(dataset.dtype))

    def _object(self, path):
        return self.h5file.get(hdf5_path(path))

    def _require(self, path):
        obj = self._object(path)
        if obj is None:
            raise PathNotFoundError(path)
        return obj

    def _synthetic(self, obj, path):
        if not isinstance(obj, h5py.Dataset):
            return {}
        if self._dataset_attributes is None:
            attributes = self._native_dataset_attributes(obj)
        else:
            attributes = self._dataset_attributes(path)
        if attributes is None:
            return {}
        d = attributes.as_dict()
        # the filters of an HDF5 dataset cannot be mapped back
        d[compression_key] = Compression.raw.as_dict()
        return d

    @staticmethod
    def _json_root(obj):
        if N5_JSON_ROOT_KEY not in obj.attrs:
            return None
        return json_loads(_decode(obj.attrs[N5_JSON_ROOT_KEY]))

    @staticmethod
    def _store_json_root(obj, root):
        obj.attrs[N5_JSON_ROOT_KEY] = json_dumps(root)

    def get(self, path: str, key: str, cls=None):
        """Read the attribute `key` of the node at `path`.

        Parameters
        ----------
        path : str
        key : str
            Attribute name or attribute path into the JSON document.
        cls : type or 'json', optional
            Requested representation. Native strings requested as ``str``
            are returned literally; requested as ``dict``, ``list``,
            ``object`` or ``'json'`` they are parsed as JSON first.

        Returns
        -------
        The value, or None if the node or the attribute does not exist.

        """
        obj = self._object(path)
        if obj is None:
            return None

        tokens = parse_attribute_path(key)
        name = tokens[0] if len(tokens) == 1 and not is_attribute_path(tokens) else None

        synthetic = {}
        if isinstance(obj, h5py.Dataset) and name in (dimensions_key, block_size_key,
                                                      data_type_key, compression_key):
            synthetic = self._synthetic(obj, path)
        if name in synthetic:
            value = synthetic[name]
            if cls is DataType:
                return normalize_data_type(value)
            if cls is Compression:
                return Compression.raw
            return convert(key, value, cls)

        if name is not None and name in obj.attrs:
            value = _read_native(obj.attrs, name)
            if isinstance(value, str) and cls in _json_classes:
                value = _parse_json(value)
            return convert(key, value, cls)

        root = self._json_root(obj)
        if root is None:
            return None
        return convert(key, read_json_path(root, tokens), cls)

    def set(self, path: str, key: str, value) -> None:
        """Write the attribute `key` of the node at `path`; None deletes it.

        Raises
        ------
        PathNotFoundError
            If there is nothing at `path`.

        """
        obj = self._require(path)
        tokens = parse_attribute_path(key)
        kind = classify(value)

        if not tokens:
            # the whole document replaces all attributes
            for name in list(obj.attrs):
                del obj.attrs[name]
            if kind is not AttributeKind.NULL:
                self._store_json_root(obj, _to_json(value))
            return

        if is_attribute_path(tokens):
            root = self._json_root(obj)
            if kind is AttributeKind.NULL:
                if remove_json_path(root, tokens):
                    self._store_json_root(obj, root)
            else:
                self._store_json_root(obj, insert_json_path(root, tokens, _to_json(value)))
            return

        name = tokens[0]
        if name in obj.attrs:
            del obj.attrs[name]
        root = self._json_root(obj)
        if remove_json_path(root, tokens):
            self._store_json_root(obj, root)

        if kind is AttributeKind.NULL:
            return
        if kind is AttributeKind.DOCUMENT:
            self._store_json_root(obj, insert_json_path(root, tokens, _to_json(value)))
        else:
            _write_native(obj.attrs, name, value, kind)

    def set_many(self, path: str, attributes: Dict[str, Any]) -> None:
        for key, value in attributes.items():
            self.set(path, key, value)

    def remove(self, path: str, key: str) -> bool:
        """Remove the attribute `key`; returns whether anything was removed."""
        obj = self._object(path)
        if obj is None:
            return False
        tokens = parse_attribute_path(key)

        if not tokens:
            names = list(obj.attrs)
            for name in names:
                del obj.attrs[name]
            return bool(names)

        if not is_attribute_path(tokens) and tokens[0] in obj.attrs:
            del obj.attrs[tokens[0]]
            return True

        root = self._json_root(obj)
        if remove_json_path(root, tokens):
            self._store_json_root(obj, root)
            return True
        return False

    def remove_many(self, path: str, keys: Iterable[str]) -> bool:
        removed = [self.remove(path, key) for key in keys]
        return any(removed)

    def pop(self, path: str, key: str, cls=None):
        """Remove the attribute `key` and return its value, or None."""
        value = self.get(path, key, cls)
        if value is not None:
            self.remove(path, key)
        return value

    def list(self, path: str) -> Dict[str, type]:
        """Map each attribute at `path` to the Python type it reads back as.

        Top level keys of the JSON document are listed alongside the native
        attributes. Native strings holding a JSON object or array are listed
        as ``dict`` or ``list``.
        """
        obj = self._require(path)
        types: Dict[str, type] = {}

        root = self._json_root(obj)
        if isinstance(root, dict):
            for k, v in root.items():
                types[k] = type(v)

        for name in obj.attrs:
            if name == N5_JSON_ROOT_KEY:
                continue
            value = _read_native(obj.attrs, name)
            if isinstance(value, str):
                value = _parse_structured(value)
            types[name] = type(value)
        return types

    def as_dict(self, path: str) -> Dict[str, Any]:
        """All attributes at `path` as JSON values, including the keys
        describing a dataset."""
        obj = self._require(path)
        d: Dict[str, Any] = {}

        root = self._json_root(obj)
        if isinstance(root, dict):
            d.update(root)
        elif root is not None:
            d[N5_JSON_ROOT_KEY] = root

        for name in obj.attrs:
            if name == N5_JSON_ROOT_KEY:
                continue
            value = _read_native(obj.attrs, name)
            if isinstance(value, str):
                value = _parse_structured(value)
            elif isinstance(value, np.ndarray):
                value = value.tolist()
            d[name] = value

        d.update(self._synthetic(obj, path))
        return d

import re
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np
from numcodecs.abc import Codec

from n5hdf5.errors import UnsupportedCompressionError, UnsupportedDataTypeError
from n5hdf5.util import normalize_shape


N5_FORMAT = '2.2.2'

# root attribute holding the format version
version_key = 'n5'

# reserved attribute holding the JSON document of each node
N5_JSON_ROOT_KEY = 'N5_JSON_ROOT'

dimensions_key = 'dimensions'
block_size_key = 'blockSize'
data_type_key = 'dataType'
compression_key = 'compression'

dataset_attribute_keys = (dimensions_key, block_size_key, data_type_key, compression_key)


class DataType(Enum):
    uint8 = 'uint8'
    uint16 = 'uint16'
    uint32 = 'uint32'
    uint64 = 'uint64'
    int8 = 'int8'
    int16 = 'int16'
    int32 = 'int32'
    int64 = 'int64'
    float32 = 'float32'
    float64 = 'float64'
    string = 'string'

    @property
    def dtype(self) -> np.dtype:
        if self is DataType.string:
            return np.dtype(object)
        return np.dtype(self.value)

    @property
    def is_numeric(self) -> bool:
        return self is not DataType.string

    @classmethod
    def from_dtype(cls, dtype) -> 'DataType':
        try:
            dtype = np.dtype(dtype)
        except TypeError:
            raise UnsupportedDataTypeError(dtype)
        if dtype.kind in 'OUS':
            return cls.string
        try:
            return cls(dtype.name)
        except ValueError:
            raise UnsupportedDataTypeError(dtype.name)


def normalize_data_type(data_type) -> DataType:
    if isinstance(data_type, DataType):
        return data_type
    if isinstance(data_type, str):
        try:
            return DataType(data_type.lower())
        except ValueError:
            pass
    return DataType.from_dtype(data_type)


class Compression(Enum):
    raw = 'raw'
    gzip = 'gzip'

    def as_dict(self) -> Dict[str, Any]:
        return {'type': self.value}


# numcodecs codec ids that map onto the fixed deflate scheme
_deflate_codec_ids = ('gzip', 'zlib')


def normalize_compression(compression) -> Compression:
    """Map a compression argument onto one of the two supported schemes.

    Accepts ``None``, a :class:`Compression`, a name (``'raw'``, ``'gzip'``,
    ``'deflate'``), an N5 compression dict (``{'type': 'gzip', ...}``), a
    numcodecs codec config (``{'id': 'zlib', ...}``) or a numcodecs
    :class:`Codec` instance.
    """

    if compression is None:
        return Compression.raw
    if isinstance(compression, Compression):
        return compression

    if isinstance(compression, Codec):
        compression = compression.get_config()

    if isinstance(compression, Mapping):
        if 'type' in compression:
            name = compression['type']
        elif 'id' in compression:
            name = compression['id']
        else:
            raise UnsupportedCompressionError(compression)
    else:
        name = compression

    if not isinstance(name, str):
        raise UnsupportedCompressionError(compression)

    name = name.lower()
    if name == 'raw':
        return Compression.raw
    if name == 'deflate' or name in _deflate_codec_ids:
        return Compression.gzip
    raise UnsupportedCompressionError(compression)


class DatasetAttributes(object):
    """Immutable description of a dataset: its dimensions and block size in
    N5 axis order, its data type and its compression.

    Parameters
    ----------
    dimensions : sequence of ints
        Size of the dataset along each axis, fastest axis first.
    block_size : sequence of ints
        Nominal block size along each axis. May exceed `dimensions`.
    data_type : DataType, str or numpy dtype
    compression : optional
        Anything accepted by :func:`normalize_compression`.

    """

    __slots__ = ('_dimensions', '_block_size', '_data_type', '_compression')

    def __init__(self, dimensions, block_size, data_type, compression=None):
        dimensions = normalize_shape(dimensions)
        block_size = normalize_shape(block_size)
        if len(dimensions) != len(block_size):
            raise ValueError(
                f'dimensions {dimensions} and block size {block_size} have different lengths')
        if any(d < 0 for d in dimensions):
            raise ValueError(f'dimensions must be non-negative, found {dimensions}')
        if any(b <= 0 for b in block_size):
            raise ValueError(f'block size must be positive, found {block_size}')
        object.__setattr__(self, '_dimensions', dimensions)
        object.__setattr__(self, '_block_size', block_size)
        object.__setattr__(self, '_data_type', normalize_data_type(data_type))
        object.__setattr__(self, '_compression', normalize_compression(compression))

    def __setattr__(self, key, value):
        raise AttributeError(f'{type(self).__name__} is immutable')

    @property
    def dimensions(self) -> Tuple[int, ...]:
        return self._dimensions

    @property
    def block_size(self) -> Tuple[int, ...]:
        return self._block_size

    @property
    def data_type(self) -> DataType:
        return self._data_type

    @property
    def compression(self) -> Compression:
        return self._compression

    @property
    def ndim(self) -> int:
        return len(self._dimensions)

    def as_dict(self) -> Dict[str, Any]:
        return {
            dimensions_key: list(self._dimensions),
            block_size_key: list(self._block_size),
            data_type_key: self._data_type.value,
            compression_key: self._compression.as_dict(),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> 'DatasetAttributes':
        return cls(
            d[dimensions_key],
            d[block_size_key],
            d[data_type_key],
            d.get(compression_key),
        )

    def __eq__(self, other):
        return (
            isinstance(other, DatasetAttributes) and
            self.as_dict() == other.as_dict()
        )

    def __hash__(self):
        return hash((self._dimensions, self._block_size, self._data_type, self._compression))

    def __repr__(self):
        return (f'{type(self).__name__}(dimensions={self._dimensions}, '
                f'block_size={self._block_size}, data_type={self._data_type.value!r}, '
                f'compression={self._compression.value!r})')


_version_pattern = re.compile(r'^(\d+)(?:\.(\d+))?(?:\.(\d+))?(.*)$')


class Version(object):
    """Semantic version of the format, as stored in the root attribute."""

    def __init__(self, major: int, minor: int = 0, patch: int = 0, suffix: str = ''):
        self.major = int(major)
        self.minor = int(minor)
        self.patch = int(patch)
        self.suffix = suffix

    @classmethod
    def parse(cls, s: Optional[str]) -> 'Version':
        if s is None:
            return cls(0)
        m = _version_pattern.match(str(s).strip())
        if m is None:
            return cls(0, suffix=str(s))
        major, minor, patch, suffix = m.groups()
        return cls(major, minor or 0, patch or 0, suffix or '')

    def is_compatible(self, other: 'Version') -> bool:
        # only a differing major version breaks the layout
        return other.major == self.major

    def __eq__(self, other):
        return (
            isinstance(other, Version) and
            (self.major, self.minor, self.patch, self.suffix) ==
            (other.major, other.minor, other.patch, other.suffix)
        )

    def __hash__(self):
        return hash((self.major, self.minor, self.patch, self.suffix))

    def __str__(self):
        return f'{self.major}.{self.minor}.{self.patch}{self.suffix}'

    def __repr__(self):
        return f'{type(self).__name__}({str(self)!r})'


VERSION = Version.parse(N5_FORMAT)

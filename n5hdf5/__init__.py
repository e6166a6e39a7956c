# flake8: noqa
from n5hdf5.attrs import AttributeCodec, AttributeKind, classify
from n5hdf5.block import DataBlock
from n5hdf5.cache import MAX_OPEN_DATASETS, OpenDatasetCache
from n5hdf5.errors import (AttributeConversionError, BlockOutOfBoundsError,
                           ContainsArrayError, ContainsGroupError, DatasetNotFoundError,
                           FileNotHDF5Error, IncompatibleVersionError, PathNotFoundError,
                           ReadOnlyError, ReshapeNotSupportedError,
                           UnsupportedCompressionError, UnsupportedDataTypeError)
from n5hdf5.indexing import crop_block, reorder, reorder_multiply, to_native
from n5hdf5.meta import (N5_FORMAT, N5_JSON_ROOT_KEY, VERSION, Compression, DataType,
                         DatasetAttributes, Version)
from n5hdf5.storage import N5HDF5Reader, N5HDF5Writer
from n5hdf5.util import is_hdf5
from n5hdf5.version import version as __version__

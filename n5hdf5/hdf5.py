"""Mapping of N5 data types and compression onto HDF5, and the thin layer of
native calls used for block I/O."""
import warnings
from typing import Any, Dict, NamedTuple, Optional, Sequence

import h5py
import numpy as np

from n5hdf5.meta import Compression, DataType, normalize_compression, normalize_data_type


# deflate level of the single supported compression scheme
DEFLATE_LEVEL = 6


class StorageFeatures(NamedTuple):
    """Filter settings passed to ``create_dataset``."""
    compression: Optional[str] = None
    compression_opts: Optional[int] = None
    shuffle: bool = False

    def as_kwargs(self) -> Dict[str, Any]:
        return dict(self._asdict())


NO_COMPRESSION = StorageFeatures()
SHUFFLE_DEFLATE = StorageFeatures('gzip', DEFLATE_LEVEL, True)
GENERIC_DEFLATE = StorageFeatures('gzip', DEFLATE_LEVEL, False)


def native_dtype(data_type) -> np.dtype:
    """The numpy dtype h5py maps onto the native HDF5 type of `data_type`."""
    data_type = normalize_data_type(data_type)
    if data_type is DataType.string:
        return h5py.string_dtype()
    return np.dtype(data_type.value)


def data_type_from_native(dtype) -> Optional[DataType]:
    """The N5 data type of a native HDF5 dataset type, or None if there is no
    counterpart."""
    dtype = np.dtype(dtype)
    if h5py.check_string_dtype(dtype) is not None:
        return DataType.string
    if dtype.kind in 'uif' and dtype.name in DataType.__members__:
        return DataType(dtype.name)
    warnings.warn(f"Datasets of type {dtype} not yet implemented.", UserWarning)
    return None


def storage_features(compression, data_type) -> StorageFeatures:
    """Filters for a new dataset. String datasets never get numeric filters.

    Raises
    ------
    UnsupportedCompressionError
        If `compression` is neither raw nor gzip.

    """
    compression = normalize_compression(compression)
    data_type = normalize_data_type(data_type)
    if compression is Compression.raw:
        return NO_COMPRESSION
    if data_type is DataType.string:
        return GENERIC_DEFLATE
    return SHUFFLE_DEFLATE


def open_dataset_id(fid, path: str):
    """Open a low level dataset id; the caller owns it and must close it."""
    return h5py.h5d.open(fid, path.encode('utf-8'))


def close_id(obj_id) -> None:
    """Close a low level id. Failures propagate."""
    if obj_id is not None and obj_id.valid:
        obj_id.close()


def create_transfer_plist():
    return h5py.h5p.create(h5py.h5p.DATASET_XFER)


def _selection(offset: Sequence[int], extent: Sequence[int]):
    return tuple(slice(o, o + e) for o, e in zip(offset, extent))


def read_hyperslab(dsid, offset: Sequence[int], extent: Sequence[int], data_type,
                   dxpl=None) -> np.ndarray:
    """Read the native region at `offset` with `extent` (HDF5 axis order)."""
    data_type = normalize_data_type(data_type)
    offset = tuple(int(o) for o in offset)
    extent = tuple(int(e) for e in extent)

    if data_type is DataType.string:
        # variable length strings go through the high level conversion path
        dataset = h5py.Dataset(dsid)
        return np.asarray(dataset.asstr()[_selection(offset, extent)], dtype=object)

    out = np.empty(extent, dtype=native_dtype(data_type))
    if out.size == 0:
        return out
    file_space = dsid.get_space()
    file_space.select_hyperslab(offset, extent)
    memory_space = h5py.h5s.create_simple(extent)
    dsid.read(memory_space, file_space, out, dxpl=dxpl)
    return out


def write_hyperslab(dsid, offset: Sequence[int], data: np.ndarray, data_type,
                    dxpl=None) -> None:
    """Write `data` (shaped in HDF5 axis order) into the region at `offset`."""
    data_type = normalize_data_type(data_type)
    offset = tuple(int(o) for o in offset)
    extent = tuple(data.shape)

    if data_type is DataType.string:
        dataset = h5py.Dataset(dsid)
        dataset[_selection(offset, extent)] = np.asarray(data, dtype=native_dtype(data_type))
        return

    data = np.ascontiguousarray(data, dtype=native_dtype(data_type))
    if data.size == 0:
        return
    file_space = dsid.get_space()
    file_space.select_hyperslab(offset, extent)
    memory_space = h5py.h5s.create_simple(extent)
    dsid.write(memory_space, file_space, data, dxpl=dxpl)

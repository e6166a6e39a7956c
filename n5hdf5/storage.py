"""N5 containers stored in a single HDF5 file.

Groups and datasets of the container are HDF5 groups and datasets at the
same path. Blocks are not stored individually: an N5 block is the hyperslab
of the HDF5 dataset at its grid position, so the HDF5 chunk shape plays the
role of the N5 block size. Attributes go through
:class:`~n5hdf5.attrs.AttributeCodec`.

Two classes are provided, :class:`N5HDF5Reader` for read-only access and
:class:`N5HDF5Writer` for read and write access. Both can be used as
context managers::

    >>> import n5hdf5
    >>> with n5hdf5.N5HDF5Writer('data/example.h5') as n5:  # doctest: +SKIP
    ...     n5.create_dataset('volumes/raw', (64, 64, 32), (16, 16, 16), 'uint8', 'gzip')

"""
import os
import posixpath
from typing import Any, Dict, List, Optional, Sequence, Tuple

import h5py

from n5hdf5._storage.store import N5Reader, N5Writer
from n5hdf5.attrs import AttributeCodec
from n5hdf5.block import DataBlock
from n5hdf5.cache import MAX_OPEN_DATASETS, OpenDatasetCache
from n5hdf5.errors import (ContainsArrayError, ContainsGroupError, FileNotHDF5Error,
                           IncompatibleVersionError, PathNotFoundError,
                           ReshapeNotSupportedError)
from n5hdf5.hdf5 import (close_id, create_transfer_plist, data_type_from_native, native_dtype,
                         open_dataset_id, read_hyperslab, storage_features, write_hyperslab)
from n5hdf5.indexing import crop_block, reorder, reorder_multiply, to_native
from n5hdf5.meta import VERSION, Compression, DatasetAttributes, DataType, version_key
from n5hdf5.util import TreeViewer, hdf5_path, is_hdf5, normalize_storage_path


class N5HDF5Reader(N5Reader):
    """Read-only access to an N5 container stored in an HDF5 file.

    Parameters
    ----------
    path : str
        Location of the HDF5 file.
    override_block_size : bool, optional
        If True, ignore the chunk shape of HDF5 datasets and always report
        `default_block_size` as block size.
    default_block_size : sequence of ints, optional
        Block size, in N5 axis order, for datasets that are not chunked (or
        for all datasets if `override_block_size` is set). Missing entries or
        entries ``<= 0`` mean the whole axis.
    max_open_datasets : int, optional
        Number of HDF5 datasets kept open between block reads and writes.

    Raises
    ------
    FileNotHDF5Error
        If a file that is not HDF5 exists at `path`.
    IncompatibleVersionError
        If the file was written with an incompatible version of the format.

    """

    _mode = 'r'

    def __init__(self, path, override_block_size=False, default_block_size=None,
                 max_open_datasets=MAX_OPEN_DATASETS):

        self._filename = os.path.abspath(os.fspath(path))
        self._override_block_size = bool(override_block_size)
        if default_block_size is None:
            default_block_size = ()
        self._default_block_size = tuple(int(b) for b in default_block_size)
        self._closed = False

        self._h5file = self._open_file(self._filename)
        self._attrs = AttributeCodec(self._h5file, dataset_attributes=self.get_dataset_attributes)
        try:
            self._check_version()
        except Exception:
            self._h5file.close()
            raise

        # shared by all block reads and writes, closed once by the cache
        self._xfer = create_transfer_plist()
        self._cache = OpenDatasetCache(
            self._open_dataset,
            close_id,
            max_size=max_open_datasets,
            exists=self.dataset_exists,
            on_shutdown=[self._close_xfer],
        )

    def _open_file(self, path: str) -> h5py.File:
        if os.path.exists(path) and not is_hdf5(path):
            raise FileNotHDF5Error(path)
        return h5py.File(path, self._mode)

    def _check_version(self):
        version = self.get_version()
        if version is not None and not VERSION.is_compatible(version):
            raise IncompatibleVersionError(version, VERSION)

    def _open_dataset(self, path: str):
        return open_dataset_id(self._h5file.id, hdf5_path(path))

    def _close_xfer(self):
        close_id(self._xfer)

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def default_block_size(self) -> Tuple[int, ...]:
        return self._default_block_size

    @property
    def override_block_size(self) -> bool:
        return self._override_block_size

    @property
    def cache(self) -> OpenDatasetCache:
        return self._cache

    def _get(self, path):
        return self._h5file.get(hdf5_path(path))

    def exists(self, path: str) -> bool:
        return hdf5_path(path) in self._h5file

    def list(self, path: str = '') -> List[str]:
        obj = self._get(path)
        if obj is None:
            raise PathNotFoundError(path)
        if isinstance(obj, h5py.Dataset):
            return []
        return sorted(obj.keys())

    def dataset_exists(self, path: str) -> bool:
        return isinstance(self._get(path), h5py.Dataset)

    def _block_size(self, dataset: h5py.Dataset, dimensions: Sequence[int]) -> Tuple[int, ...]:
        chunks = None if self._override_block_size else dataset.chunks
        if chunks is not None:
            return reorder(chunks)
        default = self._default_block_size
        return tuple(
            default[i] if i < len(default) and default[i] > 0 else max(d, 1)
            for i, d in enumerate(dimensions)
        )

    def get_dataset_attributes(self, path: str) -> Optional[DatasetAttributes]:
        """Describe the dataset at `path`, or return None if there is none or
        its HDF5 type has no N5 counterpart.

        The compression is always reported as raw: the filters of an
        existing HDF5 dataset are not mapped back.
        """
        dataset = self._get(path)
        if not isinstance(dataset, h5py.Dataset):
            return None
        data_type = data_type_from_native(dataset.dtype)
        if data_type is None:
            return None
        dimensions = reorder(dataset.shape)
        return DatasetAttributes(dimensions, self._block_size(dataset, dimensions),
                                 data_type, Compression.raw)

    def get_attribute(self, path: str, key: str, cls=None) -> Any:
        return self._attrs.get(normalize_storage_path(path), key, cls)

    def get_attributes(self, path: str) -> Dict[str, Any]:
        return self._attrs.as_dict(normalize_storage_path(path))

    def list_attributes(self, path: str) -> Dict[str, type]:
        return self._attrs.list(normalize_storage_path(path))

    def read_block(self, path: str, attributes: DatasetAttributes,
                   grid_position: Sequence[int]) -> Optional[DataBlock]:
        """Read the block at `grid_position`. Blocks on the upper border of
        the dataset come back cropped to the dataset.

        Returns None if there is no dataset at `path`.

        Raises
        ------
        BlockOutOfBoundsError
            If the block lies outside of the dataset.

        """
        path = normalize_storage_path(path)
        cropped_size, extent, offset = to_native(
            grid_position, attributes.dimensions, attributes.block_size)
        if not self.dataset_exists(path):
            return None
        with self._cache.acquire(path) as dataset:
            data = read_hyperslab(dataset.id, offset, extent, attributes.data_type,
                                  dxpl=self._xfer)
        return DataBlock(cropped_size, grid_position, data)

    def tree(self, path: str = '', level=None) -> TreeViewer:
        """Text view of the hierarchy below `path`."""
        obj = self._get(path)
        if obj is None:
            raise PathNotFoundError(path)
        return TreeViewer(obj, level=level)

    def close(self) -> None:
        """Close all open datasets and the file. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            self._cache.shutdown()
        finally:
            self._h5file.close()

    def __repr__(self):
        return f'{type(self).__name__}[file={self._filename}]'


class N5HDF5Writer(N5HDF5Reader, N5Writer):
    """Read and write access to an N5 container stored in an HDF5 file.

    The file and its parent directories are created if needed; the format
    version is stamped at the root when the writer opens.

    Parameters
    ----------
    path : str
        Location of the HDF5 file.
    override_block_size, default_block_size, max_open_datasets
        As for :class:`N5HDF5Reader`.

    """

    _mode = 'a'

    def _open_file(self, path: str) -> h5py.File:
        if os.path.exists(path) and not is_hdf5(path):
            raise FileNotHDF5Error(path)
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        return h5py.File(path, self._mode)

    def _check_version(self):
        super()._check_version()
        if self.get_version() != VERSION:
            self._attrs.set('', version_key, str(VERSION))

    def create_group(self, path: str) -> None:
        """Create the group at `path` and any missing parents.

        Raises
        ------
        ContainsArrayError
            If a dataset exists at `path` or at one of its parents.

        """
        self._check_writable()
        path = normalize_storage_path(path)
        segments = path.split('/') if path else []
        for i in range(1, len(segments) + 1):
            p = '/'.join(segments[:i])
            obj = self._get(p)
            if obj is None:
                self._h5file.create_group(hdf5_path(p))
            elif isinstance(obj, h5py.Dataset):
                raise ContainsArrayError(p)

    def create_dataset(self, path: str, dimensions, block_size=None, data_type=None,
                       compression=None) -> None:
        """Create the dataset at `path`, replacing whatever exists there.

        Parameters
        ----------
        path : str
        dimensions : sequence of ints or DatasetAttributes
            Dataset size in N5 axis order, or a complete description of the
            dataset, in which case the other arguments are ignored.
        block_size : sequence of ints
        data_type : DataType, str or numpy dtype
        compression : optional
            ``'raw'`` (default) or ``'gzip'``, in any form accepted by
            :func:`~n5hdf5.meta.normalize_compression`.

        """
        self._check_writable()
        if isinstance(dimensions, DatasetAttributes):
            attributes = dimensions
        else:
            attributes = DatasetAttributes(dimensions, block_size, data_type, compression)

        path = normalize_storage_path(path)
        if not path:
            raise ContainsGroupError(path)
        features = storage_features(attributes.compression, attributes.data_type)

        # HDF5 datasets cannot be reshaped, so any existing object goes
        if self.exists(path):
            self.remove(path)
        parent = posixpath.dirname(path)
        if parent:
            self.create_group(parent)

        shape = reorder(attributes.dimensions)
        chunks = None
        if shape:
            chunks = tuple(max(1, min(b, d))
                           for b, d in zip(reorder(attributes.block_size), shape))
        kwargs = features.as_kwargs()
        if attributes.data_type.is_numeric:
            kwargs['fillvalue'] = 0
        self._h5file.create_dataset(
            hdf5_path(path),
            shape=shape,
            dtype=native_dtype(attributes.data_type),
            chunks=chunks,
            **kwargs
        )

    def set_dataset_attributes(self, path: str, attributes: DatasetAttributes) -> None:
        raise ReshapeNotSupportedError()

    def set_attribute(self, path: str, key: str, value: Any) -> None:
        self._check_writable()
        self._attrs.set(normalize_storage_path(path), key, value)

    def set_attributes(self, path: str, attributes) -> None:
        self._check_writable()
        self._attrs.set_many(normalize_storage_path(path), attributes)

    def remove_attribute(self, path: str, key: str) -> bool:
        self._check_writable()
        return self._attrs.remove(normalize_storage_path(path), key)

    def remove_attributes(self, path: str, keys) -> bool:
        self._check_writable()
        return self._attrs.remove_many(normalize_storage_path(path), keys)

    def pop_attribute(self, path: str, key: str, cls=None) -> Any:
        self._check_writable()
        return self._attrs.pop(normalize_storage_path(path), key, cls)

    def write_block(self, path: str, attributes: DatasetAttributes, block: DataBlock) -> None:
        """Write `block` at its grid position. The offset follows from the
        nominal block size of `attributes`, the extent from ``block.size``.

        Raises
        ------
        DatasetNotFoundError
            If there is no dataset at `path`.

        """
        self._check_writable()
        path = normalize_storage_path(path)
        offset = reorder_multiply(block.grid_position, attributes.block_size)
        with self._cache.acquire(path) as dataset:
            write_hyperslab(dataset.id, offset, block.as_array(), attributes.data_type,
                            dxpl=self._xfer)

    def delete_block(self, path: str, grid_position: Sequence[int]) -> bool:
        """Overwrite the block at `grid_position` with zeros.

        HDF5 cannot drop a block; reading it afterwards returns zeros rather
        than None. Returns False for datasets that do not exist or do not
        hold numbers.
        """
        self._check_writable()
        attributes = self.get_dataset_attributes(path)
        if attributes is None or attributes.data_type is DataType.string:
            return False
        cropped_size, _ = crop_block(grid_position, attributes.dimensions, attributes.block_size)
        self.write_block(path, attributes,
                         DataBlock.create(attributes.data_type, cropped_size, grid_position))
        return True

    def _invalidate(self, path: str):
        prefix = path + '/' if path else ''
        for cached in list(self._cache):
            if cached == path or cached.startswith(prefix):
                self._cache.invalidate(cached)

    def remove(self, path: Optional[str] = None) -> bool:
        """Remove the group or dataset at `path`, or the whole container
        (including the file) if `path` is None.

        Returns
        -------
        bool
            Whether the path, or the file, is gone.

        """
        self._check_writable()

        if path is None:
            self.close()
            try:
                os.remove(self._filename)
            except OSError:
                return False
            return True

        path = normalize_storage_path(path)
        self._invalidate(path)
        if not path:
            root = self._h5file['/']
            for name in list(root):
                del root[name]
            return not self.list(path)
        if self.exists(path):
            del self._h5file[hdf5_path(path)]
        return not self.exists(path)

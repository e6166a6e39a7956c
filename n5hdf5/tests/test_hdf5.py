import warnings

import h5py
import numpy as np
import pytest

from n5hdf5.errors import UnsupportedCompressionError, UnsupportedDataTypeError
from n5hdf5.hdf5 import (DEFLATE_LEVEL, GENERIC_DEFLATE, NO_COMPRESSION, SHUFFLE_DEFLATE,
                         close_id, create_transfer_plist, data_type_from_native, native_dtype,
                         open_dataset_id, read_hyperslab, storage_features, write_hyperslab)
from n5hdf5.meta import DataType
from n5hdf5.tests.util import mktemp_h5


@pytest.mark.parametrize('data_type', [t for t in DataType if t.is_numeric])
def test_native_dtype_numeric(data_type):
    dtype = native_dtype(data_type)
    assert np.dtype(data_type.value) == dtype
    assert data_type is data_type_from_native(dtype)


def test_native_dtype_string():
    dtype = native_dtype('string')
    assert h5py.check_string_dtype(dtype) is not None
    assert DataType.string is data_type_from_native(dtype)
    with pytest.raises(UnsupportedDataTypeError):
        native_dtype('complex64')


def test_data_type_from_native_unsupported():
    with pytest.warns(UserWarning):
        assert data_type_from_native('complex64') is None
    with pytest.warns(UserWarning):
        assert data_type_from_native(np.dtype([('a', 'i4'), ('b', 'f8')])) is None


def test_storage_features():
    assert NO_COMPRESSION == storage_features('raw', 'int8')
    assert NO_COMPRESSION == storage_features(None, 'string')
    assert SHUFFLE_DEFLATE == storage_features('gzip', 'float32')
    assert GENERIC_DEFLATE == storage_features('gzip', 'string')
    assert dict(compression='gzip', compression_opts=DEFLATE_LEVEL,
                shuffle=True) == SHUFFLE_DEFLATE.as_kwargs()
    assert dict(compression=None, compression_opts=None,
                shuffle=False) == NO_COMPRESSION.as_kwargs()
    with pytest.raises(UnsupportedCompressionError):
        storage_features('blosc', 'int8')


def test_hyperslab_io():
    path = mktemp_h5()
    with h5py.File(path, 'w') as f:
        f.create_dataset('a', shape=(4, 6), dtype='i4', chunks=(2, 3))
        f.create_dataset('s', shape=(3,), dtype=h5py.string_dtype())

        xfer = create_transfer_plist()
        dsid = open_dataset_id(f.id, '/a')
        try:
            write_hyperslab(dsid, (2, 3), np.arange(6).reshape(2, 3), 'int32', dxpl=xfer)
            out = read_hyperslab(dsid, (2, 3), (2, 3), 'int32', dxpl=xfer)
            np.testing.assert_array_equal(np.arange(6).reshape(2, 3), out)
            assert np.dtype('i4') == out.dtype
            # untouched region keeps the fill value
            assert not read_hyperslab(dsid, (0, 0), (2, 3), 'int32', dxpl=xfer).any()
        finally:
            close_id(dsid)
        assert not dsid.valid
        # closing twice is harmless
        close_id(dsid)

        sid = open_dataset_id(f.id, '/s')
        try:
            write_hyperslab(sid, (1,), np.array(['foo', 'bar'], dtype=object), 'string')
            assert ['foo', 'bar'] == read_hyperslab(sid, (1,), (2,), 'string').tolist()
        finally:
            close_id(sid)
        close_id(xfer)

        with pytest.raises(KeyError):
            open_dataset_id(f.id, '/missing')

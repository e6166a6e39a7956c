import os
import textwrap

import h5py
import numpy as np
import pytest

from n5hdf5.util import (TreeViewer, hdf5_path, is_hdf5, json_dumps, json_loads,
                         normalize_shape, normalize_storage_path)
from n5hdf5.tests.util import mktemp_h5


def test_normalize_shape():
    assert (100,) == normalize_shape((100,))
    assert (100,) == normalize_shape([100])
    assert (100,) == normalize_shape(100)
    assert (10, 20) == normalize_shape(np.array([10, 20]))
    with pytest.raises(TypeError):
        normalize_shape(None)
    with pytest.raises(ValueError):
        normalize_shape('foo')


def test_normalize_storage_path():
    assert '' == normalize_storage_path(None)
    assert '' == normalize_storage_path('')
    assert '' == normalize_storage_path('/')
    assert 'foo/bar' == normalize_storage_path('/foo//bar/')
    assert 'foo/bar' == normalize_storage_path(b'foo/bar')
    assert 'foo/bar' == normalize_storage_path('foo\\bar')
    for path in ['.', '..', 'foo/./bar', 'foo/../bar']:
        with pytest.raises(ValueError):
            normalize_storage_path(path)


def test_hdf5_path():
    assert '/' == hdf5_path('')
    assert '/' == hdf5_path(None)
    assert '/foo/bar' == hdf5_path('foo/bar/')


def test_json():
    assert '{"a":[1,2],"b":"é"}' == json_dumps({'b': 'é', 'a': [1, 2]})
    assert '[1,2.5,true]' == json_dumps([np.int64(1), np.float64(2.5), np.bool_(True)])
    assert {'a': 1} == json_loads(b'{"a": 1}')
    assert [1, 2, 3] == json_loads(json_dumps(np.arange(1, 4)))
    with pytest.raises(TypeError):
        json_dumps(object())


def test_is_hdf5(tmpdir):
    path = mktemp_h5()
    assert not is_hdf5(path)
    with h5py.File(path, 'w'):
        pass
    assert is_hdf5(path)

    other = os.path.join(str(tmpdir), 'other.txt')
    with open(other, 'w') as f:
        f.write('hello')
    assert not is_hdf5(other)
    assert not is_hdf5(str(tmpdir))


def test_is_hdf5_userblock():
    path = mktemp_h5()
    with h5py.File(path, 'w', userblock_size=512):
        pass
    assert is_hdf5(path)


def test_tree():
    path = mktemp_h5()
    with h5py.File(path, 'w') as f:
        g = f.create_group('foo')
        g.create_dataset('bar', shape=(4, 10), dtype='u1')
        f.create_group('baz')

        expect_bytes = textwrap.dedent("""\
        /
         +-- baz
         +-- foo
             +-- bar (10, 4) uint8""").encode()
        expect_text = textwrap.dedent("""\
        /
         ├── baz
         └── foo
             └── bar (10, 4) uint8""")
        assert expect_bytes == bytes(TreeViewer(f))
        assert expect_text == str(TreeViewer(f))
        assert expect_text == repr(TreeViewer(f))

        expect_text = textwrap.dedent("""\
        /
         ├── baz
         └── foo""")
        assert expect_text == repr(TreeViewer(f, level=1))

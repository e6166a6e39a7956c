import atexit
import collections
import os
import shutil
import tempfile


class CountingOpener(object):
    """Stands in for the HDF5 side of an ``OpenDatasetCache``: hands out
    fresh ids for known paths and counts opens and closes per path."""

    def __init__(self, paths=()):
        self.paths = set(paths)
        self.counter = collections.Counter()
        self.open_ids = set()
        self._next_id = 0

    def exists(self, path):
        self.counter['exists', path] += 1
        return path in self.paths

    def open(self, path):
        if path not in self.paths:
            raise KeyError(path)
        self.counter['open', path] += 1
        self._next_id += 1
        dataset_id = (path, self._next_id)
        self.open_ids.add(dataset_id)
        return dataset_id

    def close(self, dataset_id):
        self.counter['close', dataset_id[0]] += 1
        self.open_ids.remove(dataset_id)


def atexit_rmtree(path, isdir=os.path.isdir, rmtree=shutil.rmtree):  # pragma: no cover
    """Ensure directory removal at interpreter exit."""
    if isdir(path):
        rmtree(path)


def mktemp_h5(name='test.h5'):
    """Path of a not yet existing HDF5 file in a fresh temporary directory."""
    path = tempfile.mkdtemp()
    atexit.register(atexit_rmtree, path)
    return os.path.join(path, name)

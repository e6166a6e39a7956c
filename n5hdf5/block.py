from typing import Sequence, Tuple

import numpy as np

from n5hdf5.indexing import reorder
from n5hdf5.meta import DataType, normalize_data_type
from n5hdf5.util import normalize_shape


class DataBlock(object):
    """A block of a dataset: its actual (possibly cropped) size and grid
    position in N5 axis order, and its elements as a flat array.

    The flat data is laid out with the first N5 axis varying fastest, which
    is the C order of the reversed (HDF5) shape; see :attr:`shape`.

    Parameters
    ----------
    size : sequence of ints
    grid_position : sequence of ints
    data : array_like
        Flat buffer of ``prod(size)`` elements.

    """

    def __init__(self, size: Sequence[int], grid_position: Sequence[int], data):
        self.size = normalize_shape(size)
        self.grid_position = normalize_shape(grid_position)
        if len(self.size) != len(self.grid_position):
            raise ValueError(
                f'size {self.size} and grid position {self.grid_position} differ in length')
        data = np.asarray(data)
        if data.ndim != 1:
            data = data.reshape(-1)
        if data.shape[0] != self.num_elements:
            raise ValueError(
                f'expected {self.num_elements} elements for block of size {self.size}, '
                f'found {data.shape[0]}')
        self.data = data

    @classmethod
    def create(cls, data_type, size: Sequence[int], grid_position: Sequence[int]) -> 'DataBlock':
        """Allocate a block filled with the zero value of `data_type`."""
        data_type = normalize_data_type(data_type)
        n = int(np.prod(normalize_shape(size), dtype=np.int64))
        if data_type is DataType.string:
            data = np.full(n, '', dtype=object)
        else:
            data = np.zeros(n, dtype=data_type.dtype)
        return cls(size, grid_position, data)

    @classmethod
    def from_array(cls, a, grid_position: Sequence[int]) -> 'DataBlock':
        """Wrap an array given in HDF5 (numpy) axis order."""
        a = np.ascontiguousarray(a)
        return cls(reorder(a.shape), grid_position, a.reshape(-1))

    @property
    def num_elements(self) -> int:
        return int(np.prod(self.size, dtype=np.int64))

    @property
    def shape(self) -> Tuple[int, ...]:
        """Shape of the block in numpy (HDF5) axis order."""
        return reorder(self.size)

    def as_array(self) -> np.ndarray:
        return self.data.reshape(self.shape)

    def __eq__(self, other):
        return (
            isinstance(other, DataBlock) and
            self.size == other.size and
            self.grid_position == other.grid_position and
            np.array_equal(self.data, other.data)
        )

    def __repr__(self):
        return (f'{type(self).__name__}(size={self.size}, grid_position={self.grid_position}, '
                f'dtype={self.data.dtype})')

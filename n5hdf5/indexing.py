"""Translation between N5 block addressing and HDF5 hyperslab selection.

N5 lists axes fastest-varying first, HDF5 (like numpy with C order) lists
them fastest-varying last. Every shape, block size, grid position and
offset crosses that boundary through :func:`reorder`.
"""
from typing import Sequence, Tuple

from n5hdf5.errors import BlockOutOfBoundsError


def reorder(seq: Sequence[int]) -> Tuple[int, ...]:
    """Reverse the axis order of `seq`. The operation is its own inverse."""
    return tuple(seq)[::-1]


def reorder_multiply(grid_position: Sequence[int], block_size: Sequence[int]) -> Tuple[int, ...]:
    """Native offset of the block at `grid_position`, in HDF5 axis order."""
    if len(grid_position) != len(block_size):
        raise ValueError(
            f'grid position {tuple(grid_position)} does not match block size {tuple(block_size)}')
    return reorder(int(g) * int(b) for g, b in zip(grid_position, block_size))


def crop_block(
    grid_position: Sequence[int],
    dimensions: Sequence[int],
    block_size: Sequence[int],
) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
    """Compute the offset and the cropped extent of a block, in N5 axis order.

    Blocks on the trailing edge of an axis are cropped to the dataset bounds.
    A grid position whose offset lies outside the dataset is a caller error.

    Returns
    -------
    cropped_size, offset : tuple of ints

    """

    grid_position = tuple(int(g) for g in grid_position)
    dimensions = tuple(int(d) for d in dimensions)
    block_size = tuple(int(b) for b in block_size)

    if not len(grid_position) == len(dimensions) == len(block_size):
        raise ValueError(
            f'grid position {grid_position}, dimensions {dimensions} and block size '
            f'{block_size} must have the same length')

    offset = []
    cropped_size = []
    for g, d, b in zip(grid_position, dimensions, block_size):
        o = g * b
        if g < 0 or o >= d:
            raise BlockOutOfBoundsError(grid_position, dimensions)
        offset.append(o)
        cropped_size.append(min(b, d - o))

    return tuple(cropped_size), tuple(offset)


def to_native(
    grid_position: Sequence[int],
    dimensions: Sequence[int],
    block_size: Sequence[int],
) -> Tuple[Tuple[int, ...], Tuple[int, ...], Tuple[int, ...]]:
    """Crop in N5 order, then reorder for the native call.

    Returns
    -------
    cropped_size : tuple of ints
        In N5 axis order, for the resulting block.
    native_extent, native_offset : tuple of ints
        In HDF5 axis order, for the hyperslab selection.

    """
    cropped_size, offset = crop_block(grid_position, dimensions, block_size)
    return cropped_size, reorder(cropped_size), reorder(offset)

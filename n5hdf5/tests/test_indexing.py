import pytest

from n5hdf5.errors import BlockOutOfBoundsError
from n5hdf5.indexing import crop_block, reorder, reorder_multiply, to_native


def test_reorder():
    assert (3, 2, 1) == reorder((1, 2, 3))
    assert (3, 2, 1) == reorder([1, 2, 3])
    assert (5,) == reorder((5,))
    assert () == reorder(())


@pytest.mark.parametrize('v', [(), (7,), (1, 2), (10, 20, 30), (4, 0, 4, 9)])
def test_reorder_is_own_inverse(v):
    assert v == reorder(reorder(v))


def test_reorder_multiply():
    assert (10, 6, 2) == reorder_multiply((1, 2, 5), (2, 3, 2))
    assert (0, 0) == reorder_multiply((0, 0), (64, 32))
    with pytest.raises(ValueError):
        reorder_multiply((1, 2), (2, 2, 2))


def test_crop_block_interior():
    size, offset = crop_block((1, 2, 0), (10, 10, 10), (2, 3, 4))
    assert (2, 3, 4) == size
    assert (2, 6, 0) == offset


def test_crop_block_edge():
    # 10 = 3 * 3 + 1, the last block along the first axis holds one element
    size, offset = crop_block((3, 0), (10, 5), (3, 8))
    assert (1, 5) == size
    assert (9, 0) == offset


@pytest.mark.parametrize('dimensions,block_size', [
    ((10, 10, 10), (2, 2, 2)),
    ((10, 7, 3), (4, 4, 4)),
    ((5, 13), (5, 6)),
])
def test_crop_block_trailing_edges(dimensions, block_size):
    for i, (d, b) in enumerate(zip(dimensions, block_size)):
        grid_position = [0] * len(dimensions)
        grid_position[i] = (d - 1) // b
        size, _ = crop_block(grid_position, dimensions, block_size)
        expected = d - grid_position[i] * b
        assert size[i] == (expected if expected < b else b)


def test_crop_block_block_larger_than_dataset():
    size, offset = crop_block((0, 0), (3, 100), (8, 8))
    assert (3, 8) == size
    assert (0, 0) == offset


def test_crop_block_out_of_bounds():
    with pytest.raises(BlockOutOfBoundsError):
        crop_block((4, 4, 999), (10, 10, 10), (2, 2, 2))
    with pytest.raises(BlockOutOfBoundsError):
        crop_block((5, 0, 0), (10, 10, 10), (2, 2, 2))
    with pytest.raises(BlockOutOfBoundsError):
        crop_block((-1, 0, 0), (10, 10, 10), (2, 2, 2))
    # out of bounds is an IndexError
    with pytest.raises(IndexError):
        crop_block((0, 3), (4, 4), (2, 2))


def test_crop_block_length_mismatch():
    with pytest.raises(ValueError):
        crop_block((0, 0), (10, 10, 10), (2, 2, 2))


def test_to_native():
    cropped_size, extent, offset = to_native((1, 0, 4), (10, 20, 9), (4, 8, 2))
    assert (4, 8, 1) == cropped_size
    assert (1, 8, 4) == extent
    assert (8, 0, 4) == offset

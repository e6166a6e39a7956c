import abc
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from n5hdf5.block import DataBlock
from n5hdf5.errors import ReadOnlyError
from n5hdf5.meta import DatasetAttributes, Version, version_key


class N5Reader(abc.ABC):
    """Abstract base class for reading an N5 container.

    Paths name groups and datasets, ``''`` and ``'/'`` both being the root.
    Dimensions, block sizes and grid positions are in N5 axis order, fastest
    varying axis first.

    Readers can be used as context manager to make sure they close on exit.
    """

    _readable = True
    _writeable = False

    def is_readable(self):
        return self._readable

    def is_writeable(self):
        return self._writeable

    def __enter__(self):
        if not hasattr(self, "_open_count"):
            self._open_count = 0
        self._open_count += 1
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self._open_count -= 1
        if self._open_count == 0:
            self.close()

    def close(self) -> None:
        """Do nothing by default"""
        pass

    def get_version(self) -> Optional[Version]:
        """Format version stored at the root, or None if there is none."""
        version = self.get_attribute('/', version_key, str)
        if version is None:
            return None
        return Version.parse(version)

    @abc.abstractmethod
    def exists(self, path: str) -> bool:
        pass  # pragma: no cover

    @abc.abstractmethod
    def list(self, path: str = '') -> List[str]:
        """Names of the children of the group at `path`."""
        pass  # pragma: no cover

    @abc.abstractmethod
    def dataset_exists(self, path: str) -> bool:
        pass  # pragma: no cover

    @abc.abstractmethod
    def get_dataset_attributes(self, path: str) -> Optional[DatasetAttributes]:
        pass  # pragma: no cover

    @abc.abstractmethod
    def get_attribute(self, path: str, key: str, cls=None) -> Any:
        pass  # pragma: no cover

    @abc.abstractmethod
    def get_attributes(self, path: str) -> Dict[str, Any]:
        pass  # pragma: no cover

    @abc.abstractmethod
    def list_attributes(self, path: str) -> Dict[str, type]:
        pass  # pragma: no cover

    @abc.abstractmethod
    def read_block(self, path: str, attributes: DatasetAttributes,
                   grid_position: Sequence[int]) -> Optional[DataBlock]:
        pass  # pragma: no cover


class N5Writer(N5Reader):
    """Abstract base class for reading and writing an N5 container."""

    _writeable = True

    def _check_writable(self):
        if not self.is_writeable():
            raise ReadOnlyError()

    @abc.abstractmethod
    def create_group(self, path: str) -> None:
        pass  # pragma: no cover

    @abc.abstractmethod
    def create_dataset(self, path: str, *args, **kwargs) -> None:
        pass  # pragma: no cover

    def set_dataset_attributes(self, path: str, attributes: DatasetAttributes) -> None:
        raise NotImplementedError  # pragma: no cover

    @abc.abstractmethod
    def set_attribute(self, path: str, key: str, value: Any) -> None:
        pass  # pragma: no cover

    def set_attributes(self, path: str, attributes: Mapping[str, Any]) -> None:
        for key, value in attributes.items():
            self.set_attribute(path, key, value)

    @abc.abstractmethod
    def remove_attribute(self, path: str, key: str) -> bool:
        pass  # pragma: no cover

    def remove_attributes(self, path: str, keys: Iterable[str]) -> bool:
        removed = False
        for key in keys:
            removed |= self.remove_attribute(path, key)
        return removed

    def pop_attribute(self, path: str, key: str, cls=None) -> Any:
        """Remove the attribute `key` and return its former value."""
        value = self.get_attribute(path, key, cls)
        if value is not None:
            self.remove_attribute(path, key)
        return value

    @abc.abstractmethod
    def write_block(self, path: str, attributes: DatasetAttributes, block: DataBlock) -> None:
        pass  # pragma: no cover

    @abc.abstractmethod
    def delete_block(self, path: str, grid_position: Sequence[int]) -> bool:
        pass  # pragma: no cover

    @abc.abstractmethod
    def remove(self, path: Optional[str] = None) -> bool:
        pass  # pragma: no cover

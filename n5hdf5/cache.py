from collections import OrderedDict
from contextlib import contextmanager
from threading import Lock
from typing import Any, Callable, Dict, Iterator, List, Optional

from n5hdf5.errors import DatasetNotFoundError


# maximum number of distinct dataset paths kept open at a time
MAX_OPEN_DATASETS = 48


class OpenDataset(object):
    """A low level dataset id borrowed from an :class:`OpenDatasetCache`.

    Callers must not close :attr:`id` themselves; the cache owns it.
    """

    __slots__ = ('path', 'id', 'refcount', 'cached')

    def __init__(self, path: str, id: Any):
        self.path = path
        self.id = id
        self.refcount = 0
        self.cached = True

    def __repr__(self):
        return f'{type(self).__name__}({self.path!r}, refcount={self.refcount})'


class OpenDatasetCache(object):
    """Least recently used cache of open dataset ids keyed by path, with
    reference counted pinning.

    Entries that are borrowed (refcount above zero) are never evicted; if
    every entry is borrowed the cache grows beyond `max_size` until some are
    released and a later insertion can evict them.

    Parameters
    ----------
    opener : callable
        ``opener(path)`` returns a new low level id, raising ``KeyError`` if
        there is no dataset at `path`.
    closer : callable
        ``closer(id)`` closes an id returned by `opener`.
    max_size : int
        Number of distinct paths kept open. Provide `None` for no limit.
    exists : callable, optional
        ``exists(path)`` tells whether `opener` would succeed.
    on_shutdown : sequence of callables, optional
        Called exactly once, in order, by :meth:`shutdown`.

    Examples
    --------
    >>> with cache.acquire('volumes/raw') as dataset:  # doctest: +SKIP
    ...     dataset.id.get_space()

    """

    def __init__(
        self,
        opener: Callable[[str], Any],
        closer: Callable[[Any], None],
        max_size: Optional[int] = MAX_OPEN_DATASETS,
        exists: Optional[Callable[[str], bool]] = None,
        on_shutdown=(),
    ):
        if max_size is not None and max_size < 1:
            raise ValueError(f'max_size must be positive, found {max_size}')
        self._opener = opener
        self._closer = closer
        self._exists = exists
        self._max_size = max_size
        self._on_shutdown: List[Callable[[], Any]] = list(on_shutdown)
        self._entries: Dict[str, OpenDataset] = OrderedDict()
        self._mutex = Lock()
        self._shut_down = False
        self.hits = self.misses = self.evictions = 0

    @property
    def max_size(self) -> Optional[int]:
        return self._max_size

    @property
    def closed(self) -> bool:
        return self._shut_down

    def __len__(self):
        with self._mutex:
            return len(self._entries)

    def __contains__(self, path):
        with self._mutex:
            return path in self._entries

    def __iter__(self) -> Iterator[str]:
        with self._mutex:
            return iter(list(self._entries))

    def refcount(self, path: str) -> int:
        with self._mutex:
            entry = self._entries.get(path)
            return 0 if entry is None else entry.refcount

    def _open(self, path: str) -> Optional[OpenDataset]:
        if self._exists is not None and not self._exists(path):
            return None
        try:
            dataset_id = self._opener(path)
        except KeyError:
            return None
        return OpenDataset(path, dataset_id)

    def _evict(self):
        # drop least recently used entries that nobody holds
        if self._max_size is None:
            return
        while len(self._entries) > self._max_size:
            for path, entry in self._entries.items():
                if entry.refcount == 0:
                    break
            else:
                # everything is pinned
                return
            del self._entries[path]
            entry.cached = False
            self.evictions += 1
            self._closer(entry.id)

    def get(self, path: str) -> Optional[OpenDataset]:
        """Borrow the dataset at `path`, or return None if there is none.

        Every successful call must be paired with :meth:`release`; prefer
        :meth:`acquire`.
        """
        with self._mutex:
            if self._shut_down:
                raise ValueError('cache has been shut down')
            try:
                entry = self._entries[path]
                self.hits += 1
                # treat the end as most recently used
                self._entries.move_to_end(path)
            except KeyError:
                self.misses += 1
                entry = self._open(path)
                if entry is None:
                    return None
                self._entries[path] = entry
                # pin before evicting so the new entry survives
                entry.refcount += 1
                try:
                    self._evict()
                except Exception:
                    entry.refcount -= 1
                    raise
                return entry
            entry.refcount += 1
            return entry

    def release(self, dataset: OpenDataset) -> None:
        with self._mutex:
            if dataset.refcount <= 0:
                raise ValueError(f'{dataset!r} is not borrowed')
            dataset.refcount -= 1
            if dataset.refcount == 0 and not dataset.cached:
                self._closer(dataset.id)

    @contextmanager
    def acquire(self, path: str):
        """Borrow the dataset at `path` for the duration of a ``with`` block.

        Raises
        ------
        DatasetNotFoundError
            If there is no dataset at `path`.

        """
        dataset = self.get(path)
        if dataset is None:
            raise DatasetNotFoundError(path)
        try:
            yield dataset
        finally:
            self.release(dataset)

    def _drop(self, entry: OpenDataset):
        entry.cached = False
        # borrowed ids are closed by the last release
        if entry.refcount == 0:
            self._closer(entry.id)

    def invalidate(self, path: str) -> None:
        """Remove `path` from the cache, closing its id once nobody holds it."""
        with self._mutex:
            entry = self._entries.pop(path, None)
            if entry is not None:
                self._drop(entry)

    def clear(self) -> None:
        """Remove every entry."""
        with self._mutex:
            self._clear()

    def _clear(self):
        # close everything, then report the first failure
        error = None
        while self._entries:
            _, entry = self._entries.popitem(last=False)
            try:
                self._drop(entry)
            except Exception as e:
                if error is None:
                    error = e
        if error is not None:
            raise error

    def shutdown(self) -> None:
        """Close every entry, then the shared resources. Safe to call twice."""
        callbacks = []
        try:
            with self._mutex:
                if self._shut_down:
                    return
                self._shut_down = True
                callbacks, self._on_shutdown = self._on_shutdown, []
                self._clear()
        finally:
            # shared resources are closed exactly once
            for callback in callbacks:
                callback()

    close = shutdown

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.shutdown()

    def __repr__(self):
        return (f'{type(self).__name__}(size={len(self._entries)}, max_size={self._max_size}, '
                f'hits={self.hits}, misses={self.misses}, evictions={self.evictions})')

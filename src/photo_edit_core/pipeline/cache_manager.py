import collections
import threading
from typing import Callable, Hashable, Optional
from loguru import logger

from photo_edit_core.config import CACHE_MAX_ITEMS, CACHE_MAX_MEMORY_MB
from photo_edit_core.pipeline.color_cube import ColorCubeData


class CachedCube:
    """
    Container for a cached color cube
    """
    def __init__(self, key: Hashable, cube: ColorCubeData):
        self.key = key
        self.cube = cube
        self.size_mb = cube.nbytes / (1024 * 1024)


class ColorCubeCache:
    """
    Thread-safe LRU cache for decoded LUTs and blended color cubes.

    Keys are usually (lut source, intensity) pairs. `get_or_build` runs at
    most one build per key at a time; concurrent callers for the same key
    wait for that build instead of repeating it.
    """
    def __init__(self, max_items: int = CACHE_MAX_ITEMS, max_memory_mb: float = CACHE_MAX_MEMORY_MB):
        self.max_items = max(1, int(max_items))
        self.max_memory_mb = max_memory_mb
        self.cache = collections.OrderedDict()
        self.lock = threading.Lock()
        self.current_memory_mb = 0.0
        self._in_flight = {}

    def get(self, key: Hashable) -> Optional[ColorCubeData]:
        with self.lock:
            if key in self.cache:
                # Move to end (mark as recently used)
                self.cache.move_to_end(key)
                return self.cache[key].cube
            return None

    def put(self, key: Hashable, cube: ColorCubeData):
        with self.lock:
            self._store(key, cube)

    def _store(self, key: Hashable, cube: ColorCubeData):
        if key in self.cache:
            old_item = self.cache.pop(key)
            self.current_memory_mb -= old_item.size_mb

        item = CachedCube(key, cube)
        self.cache[key] = item
        self.current_memory_mb += item.size_mb

        self._evict_if_needed()

        logger.debug(f"[Cache] Added {key}. Items: {len(self.cache)}, Mem: {self.current_memory_mb:.1f}MB")

    def _evict_if_needed(self):
        while len(self.cache) > self.max_items:
            key, item = self.cache.popitem(last=False)
            self.current_memory_mb -= item.size_mb
            logger.debug(f"[Cache] Evicted (Count Limit) {key}. Mem: {self.current_memory_mb:.1f}MB")

        while self.current_memory_mb > self.max_memory_mb and len(self.cache) > 1:
            # The newest entry always stays
            key, item = self.cache.popitem(last=False)
            self.current_memory_mb -= item.size_mb
            logger.debug(f"[Cache] Evicted (Memory Limit) {key}. Mem: {self.current_memory_mb:.1f}MB")

    def get_or_build(self, key: Hashable, builder: Callable[[], ColorCubeData]) -> ColorCubeData:
        """
        Return the cached cube for key, building it with builder() on a miss.

        A failed build is not cached; its exception reaches the caller that
        ran it and the next caller tries again.
        """
        while True:
            with self.lock:
                item = self.cache.get(key)
                if item is not None:
                    self.cache.move_to_end(key)
                    return item.cube
                pending = self._in_flight.get(key)
                if pending is None:
                    pending = threading.Event()
                    self._in_flight[key] = pending
                    owner = True
                else:
                    owner = False

            if not owner:
                pending.wait()
                continue

            try:
                cube = builder()
                with self.lock:
                    self._store(key, cube)
                return cube
            finally:
                with self.lock:
                    self._in_flight.pop(key, None)
                pending.set()

    def clear(self):
        with self.lock:
            self.cache.clear()
            self.current_memory_mb = 0.0

    def __len__(self):
        with self.lock:
            return len(self.cache)

    def __contains__(self, key):
        with self.lock:
            return key in self.cache

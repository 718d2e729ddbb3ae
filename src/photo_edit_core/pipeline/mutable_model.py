from contextlib import contextmanager
from typing import Callable, Optional, Union
from PySide6.QtCore import QObject, Signal

from photo_edit_core.pipeline.model import FIELD_NAMES, PhotoEditModel, values_equal


def _field_property(name: str) -> property:
    def getter(self):
        return getattr(self._value, name)

    def setter(self, value):
        self._set_field(name, value)

    return property(getter, setter, doc=f"Read/write access to PhotoEditModel.{name}")


class MutablePhotoEditModel(QObject):
    """
    Mutable, observable edit state wrapping one PhotoEditModel value.

    Setting a field outside a batch emits `changed` once if the value actually
    changed. Inside `changes()` notifications are held back and the outermost
    block emits at most one, and only when the value differs from the one seen
    on entry. The signal carries the model instance; observers re-read the
    fields they need.
    """
    changed = Signal(object)

    def __init__(self, model: Optional[PhotoEditModel] = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._value = model if model is not None else PhotoEditModel()
        self._transaction_depth = 0
        self._transaction_start: Optional[PhotoEditModel] = None

    # --- Transactions ---

    @contextmanager
    def changes(self):
        """Batch any number of mutations into a single notification."""
        if self._transaction_depth == 0:
            self._transaction_start = self._value
        self._transaction_depth += 1
        try:
            yield self
        finally:
            self._transaction_depth -= 1
            if self._transaction_depth == 0:
                start, self._transaction_start = self._transaction_start, None
                if not start.is_equal(self._value):
                    self.changed.emit(self)

    def perform_changes(self, changes_block: Callable[["MutablePhotoEditModel"], None]):
        with self.changes():
            changes_block(self)

    @property
    def in_transaction(self) -> bool:
        return self._transaction_depth > 0

    def _set_field(self, name: str, value):
        updated = self._value.with_changes(**{name: value})
        # Compare after normalization so clamped duplicates stay silent
        if values_equal(getattr(updated, name), getattr(self._value, name)):
            return
        with self.changes():
            self._value = updated

    def update(self, **fields):
        """Set several fields in one batch."""
        with self.changes():
            self._value = self._value.with_changes(**fields)

    def copy_values_from_model(self, source: Union[PhotoEditModel, "MutablePhotoEditModel"]):
        """Overwrite every field with the values of source (one notification at most)."""
        snapshot = source.snapshot() if isinstance(source, MutablePhotoEditModel) else source
        with self.changes():
            self._value = snapshot

    def reset(self):
        self.copy_values_from_model(PhotoEditModel())

    # --- Snapshots & comparison ---

    def snapshot(self) -> PhotoEditModel:
        """Independent immutable copy; later mutations never reach it."""
        return self._value

    def copy(self) -> PhotoEditModel:
        return self.snapshot()

    def field_values(self) -> dict:
        return self._value.field_values()

    def is_equal(self, other) -> bool:
        """Value comparison with a snapshot or another mutable model.

        `==` stays identity based, matching the identity hash observers key on.
        """
        return self._value.is_equal(other)

    @property
    def is_geometry_identity(self) -> bool:
        return self._value.is_geometry_identity

    @property
    def is_identity(self) -> bool:
        return self._value.is_identity

    def __repr__(self):
        return f"MutablePhotoEditModel({self._value!r})"


for _name in FIELD_NAMES:
    setattr(MutablePhotoEditModel, _name, _field_property(_name))
del _name

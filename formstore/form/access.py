from typing import TYPE_CHECKING, Any, Optional, Union

from formstore.exceptions import PathError

if TYPE_CHECKING:
    from formstore.form.manager import FormManager


class FieldAccessProxy:
    """
    Proxy for cleaner field access syntax.
    Enables usage like: form.F.user.email.value or form.F.items[0].name.set_value("x")

    Every read goes to the store through the manager, so a proxy never
    holds stale state.
    """
    def __init__(self, manager: 'FormManager', path: str = ""):
        self._manager = manager
        self._path = path

    def __getattr__(self, name: str) -> 'FieldAccessProxy':
        if name.startswith("__"):
            raise AttributeError(name)
        new_path = f"{self._path}.{name}" if self._path else name
        return FieldAccessProxy(self._manager, new_path)

    def __getitem__(self, key: Union[int, str]) -> 'FieldAccessProxy':
        if isinstance(key, int):
            if not self._path:
                raise KeyError("An index needs a parent field")
            new_path = f"{self._path}[{key}]"
        else:
            new_path = f"{self._path}.{key}" if self._path else key
        return FieldAccessProxy(self._manager, new_path)

    def __repr__(self) -> str:
        return f"<FieldAccessProxy {self._path or '<root>'}>"

    @property
    def path(self) -> str:
        return self._path

    def _require_path(self) -> str:
        if not self._path:
            raise PathError(self._path, "the root proxy does not address a field")
        return self._path

    @property
    def value(self) -> Any:
        return self._manager.manipulator.get_value(self._manager.get(), self._require_path())

    @property
    def error(self) -> Optional[str]:
        return self._manager.manipulator.get_error(self._manager.get(), self._require_path())

    @property
    def touched(self) -> bool:
        return self._manager.manipulator.get_touched(self._manager.get(), self._require_path())

    @property
    def valid(self) -> bool:
        return not self.error

    def set_value(self, value: Any) -> None:
        self._manager.set_field_value(self._require_path(), value)

    def set_error(self, message: Optional[str]) -> None:
        self._manager.set_field_error(self._require_path(), message)

    def set_touched(self, value: bool = True) -> None:
        self._manager.set_field_touched(self._require_path(), value)

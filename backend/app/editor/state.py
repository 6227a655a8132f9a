"""Editor state, transactions and plugins."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from backend.app.editor.schema import Node
from backend.app.editor.transform import Transform


class MismatchedTransactionError(ValueError):
    """Transaction was built against a different document than the state's."""

    pass


class Transaction(Transform):
    """Transform plus metadata, created from an editor state."""

    def __init__(self, state: "EditorState") -> None:
        super().__init__(state.doc)
        self.before = state
        self.time = time.time()
        self._meta: dict[str, Any] = {}

    def set_meta(self, key: "str | PluginKey", value: Any) -> "Transaction":
        self._meta[key.name if isinstance(key, PluginKey) else key] = value
        return self

    def get_meta(self, key: "str | PluginKey") -> Any:
        return self._meta.get(key.name if isinstance(key, PluginKey) else key)


class PluginKey:
    """Named handle used to read a plugin's state and address its metadata."""

    def __init__(self, name: str) -> None:
        self.name = name

    def get_state(self, state: "EditorState") -> Any:
        return state.plugin_state(self.name)

    def __repr__(self) -> str:
        return f"PluginKey({self.name!r})"


@dataclass(frozen=True)
class Plugin:
    """Plugin with a state field; `decorations` derives overlays from that field."""

    key: PluginKey
    init: Callable[[Node], Any]
    apply: Callable[[Transaction, Any], Any]
    decorations: Callable[[Any], Any] | None = None


class EditorState:
    """Immutable snapshot of a document plus plugin states."""

    def __init__(self, doc: Node, plugins: tuple[Plugin, ...], fields: dict[str, Any]) -> None:
        self.doc = doc
        self.plugins = plugins
        self._fields = fields

    @classmethod
    def create(cls, doc: Node, plugins: list[Plugin] | None = None) -> "EditorState":
        plugins_tuple = tuple(plugins or ())
        fields = {plugin.key.name: plugin.init(doc) for plugin in plugins_tuple}
        return cls(doc, plugins_tuple, fields)

    @property
    def tr(self) -> Transaction:
        return Transaction(self)

    def plugin_state(self, name: str) -> Any:
        return self._fields.get(name)

    def apply(self, tr: Transaction) -> "EditorState":
        if tr.doc_before is not self.doc and tr.doc_before != self.doc:
            raise MismatchedTransactionError("Applying a mismatched transaction")
        fields = {plugin.key.name: plugin.apply(tr, self._fields.get(plugin.key.name)) for plugin in self.plugins}
        return EditorState(tr.doc, self.plugins, fields)

    def decorations(self) -> list[Any]:
        result = []
        for plugin in self.plugins:
            if plugin.decorations is not None:
                result.append(plugin.decorations(self._fields.get(plugin.key.name)))
        return result

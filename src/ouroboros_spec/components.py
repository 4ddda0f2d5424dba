"""CRUD over one ``components.<key>`` map of a stored document.

Shared by the REST schema service and the WebSocket component service.
Renames rewrite every ``$ref`` to the renamed item across the whole
document; subclasses hook in for the extra bookkeeping their format needs.
"""

import copy
from typing import Any, Callable

import structlog

from .errors import DuplicateError, InvalidRequestError, NotFoundError
from .storage import SpecStore, ensure_section

logger = structlog.get_logger()

RefRewriter = Callable[[Any, dict[str, str]], int]


def component_table(document: dict, key: str) -> dict:
    components = ensure_section(document, "components")[0]
    return ensure_section(components, key)[0]


class ComponentTable:
    def __init__(self, store: SpecStore, key: str, kind: str, rewrite_refs: RefRewriter):
        self.store = store
        self.key = key
        self.kind = kind
        self.rewrite_refs = rewrite_refs

    def entries(self) -> dict[str, dict]:
        with self.store.read_locked():
            return dict(component_table(self.store.read(), self.key))

    def get(self, name: str) -> dict:
        with self.store.read_locked():
            items = component_table(self.store.read(), self.key)
        if name not in items:
            raise NotFoundError(self.kind, name)
        return items[name]

    def create(self, name: str, definition: dict | None) -> dict:
        if not name:
            raise InvalidRequestError(f"{self.kind} name is required")
        prepared = self.prepare(definition)
        with self.store.write_locked():
            document = self.store.read()
            items = component_table(document, self.key)
            if name in items:
                raise DuplicateError(self.kind, name)
            items[name] = prepared
            self.store.write(document)
        logger.info(f"{self.kind}_created", name=name)
        return prepared

    def update(self, name: str, definition: dict | None = None, new_name: str | None = None) -> dict:
        """Replace the definition and/or rename the item, rewriting every ``$ref`` to it."""
        prepared = self.prepare(definition) if definition is not None else None
        with self.store.write_locked():
            document = self.store.read()
            items = component_table(document, self.key)
            if name not in items:
                raise NotFoundError(self.kind, name)
            target = name
            if new_name and new_name != name:
                if new_name in items:
                    raise DuplicateError(self.kind, new_name)
                renames = {name: new_name}
                document["components"][self.key] = items = {
                    renames.get(key, key): value for key, value in items.items()
                }
                rewritten = self.rewrite_refs(document, renames)
                self.after_rename(document, renames)
                logger.info(f"{self.kind}_renamed", name=name, new_name=new_name, refs=rewritten)
                target = new_name
            if prepared is not None:
                items[target] = prepared
            self.store.write(document)
            return items[target]

    def delete(self, name: str) -> None:
        with self.store.write_locked():
            document = self.store.read()
            items = component_table(document, self.key)
            if name not in items:
                raise NotFoundError(self.kind, name)
            del items[name]
            self.after_delete(document, name)
            self.store.write(document)
        logger.info(f"{self.kind}_deleted", name=name)

    def prepare(self, definition: dict | None) -> dict:
        """Copy of the caller's definition as it will be stored."""
        return copy.deepcopy(definition) if definition is not None else {}

    def after_rename(self, document: dict, renames: dict[str, str]) -> None:
        pass

    def after_delete(self, document: dict, name: str) -> None:
        pass

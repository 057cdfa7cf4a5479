import logging
from typing import Dict, List, Optional, Type

from parsemodel.core.exceptions import UnresolvableTypeError
from parsemodel.core.types import normalize_class_name

logger = logging.getLogger(__name__)


class Registry:
    """
    Maps a remote class name to the local model type that represents it.

    Models register themselves when their class is created. A model whose
    local name differs from its remote collection sets ``class_name`` and is
    found through that override first; otherwise the literal remote name must
    match a local class name.
    """

    def __init__(self):
        self._models: Dict[str, Type] = {}
        self._overrides: Dict[str, Type] = {}

    def register(self, model: Type) -> None:
        name = model.__name__
        if name in self._models and self._models[name] is not model:
            logger.debug(f"Replacing registered model '{name}' with {model!r}")
        self._models[name] = model

        override = getattr(model, "class_name", None)
        if override:
            self._overrides[override] = model

    def unregister(self, model: Type) -> None:
        if self._models.get(model.__name__) is model:
            del self._models[model.__name__]
        for key, value in list(self._overrides.items()):
            if value is model:
                del self._overrides[key]

    def get_override(self, class_name: str) -> Optional[Type]:
        return self._overrides.get(class_name)

    def resolve(self, class_name: Optional[str]) -> Type:
        """
        Return the local model type for a remote class name.

        :raises UnresolvableTypeError: if neither an override nor the literal
            name is known.
        """
        if not class_name:
            raise UnresolvableTypeError(class_name)

        # Overrides are keyed by the raw remote name (e.g. "_User").
        model = self._overrides.get(class_name)
        if model is not None:
            return model

        name = normalize_class_name(class_name)
        model = self._overrides.get(name) or self._models.get(name)
        if model is None:
            raise UnresolvableTypeError(class_name)
        return model

    def models(self) -> List[Type]:
        return list(self._models.values())

    def __contains__(self, class_name: str) -> bool:
        try:
            self.resolve(class_name)
        except UnresolvableTypeError:
            return False
        return True


registry = Registry()

"""
Lifecycle callbacks around save, create, update and destroy.

Decorate model methods with :func:`before_save`, :func:`after_create` and so
on; the model class collects them when it is defined. A ``before_*`` callback
that returns ``False`` halts the operation.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from parsemodel.core.types import ActionType

logger = logging.getLogger(__name__)

BEFORE = "before"
AFTER = "after"

HOOK_ATTRIBUTE = "_parsemodel_hooks"


def hook_name(phase: str, action: ActionType) -> str:
    return f"{phase}_{action.value}"


class HookRegistry:
    """Per-model registry of lifecycle callbacks."""

    def __init__(self, hooks: Optional[Dict[str, List[Callable]]] = None):
        self._hooks: Dict[str, List[Callable]] = {k: list(v) for k, v in (hooks or {}).items()}

    def copy(self) -> "HookRegistry":
        return HookRegistry(self._hooks)

    def register(self, name: str, func: Callable) -> Callable:
        callbacks = self._hooks.setdefault(name, [])
        if func not in callbacks:
            callbacks.append(func)
        return func

    def get(self, name: str) -> List[Callable]:
        return list(self._hooks.get(name, ()))

    def _run_before(self, action: ActionType, instance: Any) -> bool:
        for callback in self.get(hook_name(BEFORE, action)):
            if callback(instance) is False:
                logger.debug(
                    f"{callback.__name__} halted {action.value} of {type(instance).__name__}"
                )
                return False
        return True

    def _run_after(self, action: ActionType, instance: Any) -> None:
        for callback in self.get(hook_name(AFTER, action)):
            callback(instance)

    def run(self, action: ActionType, instance: Any, operation: Callable[[], Any]) -> Any:
        """
        Run ``operation`` wrapped in the before/after callbacks for ``action``.

        Returns ``False`` without calling ``operation`` when a before callback
        halts; after callbacks only run when ``operation`` did not return
        ``False``.
        """
        if not self._run_before(action, instance):
            return False
        result = operation()
        if result is not False:
            self._run_after(action, instance)
        return result


def _marker(phase: str, action: ActionType) -> Callable[[Callable], Callable]:
    def decorator(func: Callable) -> Callable:
        names = list(getattr(func, HOOK_ATTRIBUTE, ()))
        names.append(hook_name(phase, action))
        setattr(func, HOOK_ATTRIBUTE, names)
        return func

    return decorator


before_save = _marker(BEFORE, ActionType.SAVE)
after_save = _marker(AFTER, ActionType.SAVE)
before_create = _marker(BEFORE, ActionType.CREATE)
after_create = _marker(AFTER, ActionType.CREATE)
before_update = _marker(BEFORE, ActionType.UPDATE)
after_update = _marker(AFTER, ActionType.UPDATE)
before_destroy = _marker(BEFORE, ActionType.DESTROY)
after_destroy = _marker(AFTER, ActionType.DESTROY)


def collect_hooks(members: Dict[str, Any], registry: HookRegistry) -> HookRegistry:
    """Register every decorated function found in a class namespace."""
    for value in members.values():
        for name in getattr(value, HOOK_ATTRIBUTE, ()):
            registry.register(name, value)
    return registry

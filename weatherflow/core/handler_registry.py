"""Registry mapping node type tags to their handlers."""

from typing import Dict, List, TYPE_CHECKING

from .exceptions import ConfigurationError, UnknownNodeTypeError
from .logging import get_logger

if TYPE_CHECKING:
    from .node_handlers import NodeHandler

logger = get_logger(__name__)


class NodeHandlerRegistry:
    """Lookup table from node type to the strategy object that executes it."""

    def __init__(self):
        self._handlers: Dict[str, "NodeHandler"] = {}

    def register_handler(self, handler: "NodeHandler", replace: bool = False) -> None:
        """Register a handler under its node type.

        Args:
            handler: Handler instance exposing node_type and execute()
            replace: Allow overriding an existing registration

        Raises:
            ConfigurationError: If the node type is empty or already registered
        """
        node_type = (getattr(handler, "node_type", "") or "").strip()
        if not node_type:
            raise ConfigurationError("Handler must declare a node type")

        if node_type in self._handlers and not replace:
            raise ConfigurationError(
                f"Handler for node type '{node_type}' is already registered",
                config_key=node_type
            )

        self._handlers[node_type] = handler
        logger.debug(f"Registered handler {type(handler).__name__} for node type '{node_type}'")

    def unregister_handler(self, node_type: str) -> bool:
        """Remove a handler. Returns False if none was registered."""
        return self._handlers.pop(node_type, None) is not None

    def get_handler(self, node_type: str) -> "NodeHandler":
        """Retrieve the handler for a node type.

        Raises:
            UnknownNodeTypeError: If no handler is registered for the type
        """
        handler = self._handlers.get(node_type)
        if handler is None:
            raise UnknownNodeTypeError(node_type)
        return handler

    def list_node_types(self) -> List[str]:
        return sorted(self._handlers)

from typing import Optional, Tuple


class FlowLensError(Exception):
    pass


class ParseError(FlowLensError):
    """Raised when a script cannot be parsed or has no workflow() entry point."""

    def __init__(self, message: str, location: Optional[Tuple[int, int]] = None):
        super().__init__(message)
        self.message = message
        # (line, column), both 1-based
        self.location = location


class NodeRenderError(FlowLensError):
    """Raised when a single statement cannot be turned into a display node."""

    def __init__(self, what: str, message: str):
        super().__init__(message)
        self.what = what
        self.message = message


class CodeGenError(FlowLensError):
    """Raised when an AST node cannot be rendered back to source."""
    pass


class StripTypesError(FlowLensError):
    """Raised when type-only syntax cannot be removed safely."""
    pass


class ConfigError(FlowLensError):
    pass

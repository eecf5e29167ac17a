class MinimalTodoError(Exception):
    """Base class for errors raised by the data/state core."""


class ValidationError(MinimalTodoError, ValueError):
    """Blank required text or an out-of-range numeric input."""


class InvalidConfiguration(MinimalTodoError, ValueError):
    """A preference value outside its allowed range."""


class NotFound(MinimalTodoError, LookupError):
    def __init__(self, kind: str, ident: object) -> None:
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident

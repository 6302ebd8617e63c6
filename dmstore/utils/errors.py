from typing import Dict, Optional


class ValidationError(ValueError):

    def __init__(self, errors: Dict[str, str], message: str = "Validation failed") -> None:
        super().__init__(message)
        self.message = message
        # field name -> reason, failing fields only
        self.errors = dict(errors)


class StorageError(RuntimeError):

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

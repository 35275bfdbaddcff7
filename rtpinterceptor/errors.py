"""Error aggregation used when closing several interceptors."""

from __future__ import annotations

from collections.abc import Iterable


class MultiError(Exception):
    """An error made of several underlying errors."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors = list(errors)
        super().__init__(str(self))

    def __str__(self) -> str:
        messages = [str(err) for err in self.errors if err is not None]
        if not messages:
            return "multiError must contain multiple error but is empty"
        return "\n".join(messages)

    def contains(self, err: BaseException) -> bool:
        """Report whether ``err`` is one of the wrapped errors, at any depth."""
        for candidate in self.errors:
            current = candidate
            while current is not None:
                if current is err:
                    return True
                if isinstance(current, MultiError) and current.contains(err):
                    return True
                current = current.__cause__
        return False


def flatten_errs(errs: Iterable[BaseException | None]) -> MultiError | None:
    """Collect the non-None errors into a MultiError, or return None."""
    present = [err for err in errs if err is not None]
    if not present:
        return None
    return MultiError(present)
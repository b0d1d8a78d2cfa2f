class InvalidArgument(ValueError):
    """Malformed tensor shape or an inconsistent combination of arguments."""


class DegenerateRange(UserWarning):
    """A random range was too small to be meaningful and has been clamped."""

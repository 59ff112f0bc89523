"""Centralized console creation utilities."""

from rich.console import Console


def get_stderr_console(no_color: bool = False) -> Console:
    """Get console for errors, warnings and the picker UI.

    The picker draws on stderr so that stdout stays usable for piping.
    ``sys.stderr`` is looked up on every write, not captured here.

    Args:
        no_color: Disable color output

    Returns:
        Console instance configured for stderr
    """
    return Console(stderr=True, no_color=no_color)

"""Progress feedback display for CLI operations."""

import click


def show_analyzing(paragraph_count: int, model: str) -> None:
    """Show analysis start.

    Args:
        paragraph_count: Number of paragraphs being analyzed
        model: Model being used
    """
    click.echo(f"Analyzing {paragraph_count} paragraph(s)... (using model: {model})", err=True)


def show_watching(path: str, quiet_period: float) -> None:
    """Show watch mode start.

    Args:
        path: File being watched
        quiet_period: Debounce quiet period in seconds
    """
    click.echo(f"Watching {path} (analysis after {quiet_period:g}s of quiet). Ctrl+C to stop.", err=True)


def show_error(message: str) -> None:
    """Show error message.

    Args:
        message: Error message to display
    """
    click.echo(f"Error: {message}", err=True)


def show_warning(message: str) -> None:
    """Show warning message.

    Args:
        message: Warning message to display
    """
    click.echo(f"Warning: {message}", err=True)

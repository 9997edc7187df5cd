"""Output formatting utilities for Mushcord Installer."""

import json
import os
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from tabulate import tabulate


class OutputFormatter:
    """Handles formatting and display of command results."""

    SUPPORTED_FORMATS = ['json', 'table', 'plain']

    def __init__(self, format_type: str = 'table', indent: int = 2):
        """Initialize output formatter.

        Args:
            format_type: Output format (json, table, plain)
            indent: Indentation level for JSON
        """
        if format_type not in self.SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported format: {format_type}. Supported: {self.SUPPORTED_FORMATS}")

        self.format_type = format_type
        self.indent = indent

    def format_data(self, data: Any, **kwargs) -> str:
        """Format data according to the specified format.

        Args:
            data: Data to format
            **kwargs: Additional formatting options

        Returns:
            Formatted string
        """
        if self.format_type == 'json':
            return self._format_json(data, **kwargs)
        elif self.format_type == 'table':
            return self._format_table(data, **kwargs)
        return self._format_plain(data)

    def _format_json(self, data: Any, **kwargs) -> str:
        return json.dumps(
            data,
            indent=self.indent,
            ensure_ascii=False,
            default=self._json_serializer,
            **kwargs
        )

    def _format_table(self, data: Any, **kwargs) -> str:
        """Format data as a table."""
        if isinstance(data, dict):
            table_data = [[k, self._cell(v)] for k, v in data.items()]
            headers = ['Field', 'Value']
        elif isinstance(data, list) and data:
            if isinstance(data[0], dict):
                # List of dicts - use dict keys as headers
                headers = list(data[0].keys())
                table_data = [[self._cell(item.get(h, '')) for h in headers] for item in data]
            else:
                headers = ['Value']
                table_data = [[self._cell(item)] for item in data]
        elif isinstance(data, list):
            return "(none)"
        else:
            headers = ['Value']
            table_data = [[self._cell(data)]]

        return tabulate(
            table_data,
            headers=headers,
            tablefmt=kwargs.get('tablefmt', 'simple'),
        )

    def _format_plain(self, data: Any) -> str:
        if isinstance(data, dict):
            return '\n'.join(f"{key}: {self._cell(value)}" for key, value in data.items())
        elif isinstance(data, list):
            return '\n'.join(self._format_plain(item) for item in data)
        return self._cell(data)

    def _cell(self, value: Any) -> str:
        if value is None:
            return ''
        if isinstance(value, bool):
            return 'yes' if value else 'no'
        if isinstance(value, (Path, Enum)):
            return str(self._json_serializer(value))
        return str(value)

    def _json_serializer(self, obj: Any) -> Any:
        """Custom JSON serializer for non-standard types."""
        if isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, Path):
            return str(obj)
        elif isinstance(obj, Enum):
            return obj.value
        elif isinstance(obj, Exception):
            return str(obj)
        elif hasattr(obj, '__dict__'):
            return obj.__dict__
        return str(obj)

    def print_data(self, data: Any, file=None, **kwargs) -> None:
        """Print formatted data to file or stdout.

        Args:
            data: Data to print
            file: File object to write to (default: stdout)
            **kwargs: Additional formatting options
        """
        print(self.format_data(data, **kwargs), file=file or sys.stdout)


class ProgressDisplay:
    """Single-line byte progress for downloads in interactive terminals."""

    def __init__(self, description: str = "Downloading", width: int = 30, stream=None):
        self.description = description
        self.width = width
        self.stream = stream or sys.stderr
        self.enabled = hasattr(self.stream, 'isatty') and self.stream.isatty()
        self._finished = False

    def __call__(self, downloaded: int, total: int) -> None:
        if not self.enabled:
            return
        if total:
            filled = min(self.width, int(self.width * downloaded // total))
            bar = '█' * filled + '░' * (self.width - filled)
            line = f"\r{self.description}: {bar} {format_file_size(downloaded)}/{format_file_size(total)}"
        else:
            line = f"\r{self.description}: {format_file_size(downloaded)}"
        print(line, end='', flush=True, file=self.stream)

    def finish(self) -> None:
        if self.enabled and not self._finished:
            print(file=self.stream)
        self._finished = True


class ColorFormatter:
    """Add color formatting to text output."""

    # ANSI color codes
    COLORS = {
        'reset': '\033[0m',
        'bright_red': '\033[91m',
        'bright_green': '\033[92m',
        'bright_yellow': '\033[93m',
        'bright_blue': '\033[94m',
    }

    def __init__(self, enabled: bool = True):
        """Initialize color formatter.

        Args:
            enabled: Whether to enable color output
        """
        self.enabled = enabled and self._supports_color()

    def _supports_color(self) -> bool:
        """Check if the terminal supports color output."""
        return (
            hasattr(sys.stdout, 'isatty') and sys.stdout.isatty() and
            os.environ.get('TERM') != 'dumb' and 'NO_COLOR' not in os.environ
        )

    def colorize(self, text: str, color: str) -> str:
        """Apply color to text.

        Args:
            text: Text to colorize
            color: Color name

        Returns:
            Colorized text
        """
        if not self.enabled or color not in self.COLORS:
            return text

        return f"{self.COLORS[color]}{text}{self.COLORS['reset']}"

    def success(self, text: str) -> str:
        """Format text as success (green)."""
        return self.colorize(text, 'bright_green')

    def error(self, text: str) -> str:
        """Format text as error (red)."""
        return self.colorize(text, 'bright_red')

    def warning(self, text: str) -> str:
        """Format text as warning (yellow)."""
        return self.colorize(text, 'bright_yellow')

    def info(self, text: str) -> str:
        """Format text as info (blue)."""
        return self.colorize(text, 'bright_blue')


# Global formatter instances
_color_formatter = ColorFormatter()
_output_formatter = OutputFormatter()


def get_color_formatter() -> ColorFormatter:
    """Get global color formatter instance."""
    return _color_formatter


def get_output_formatter() -> OutputFormatter:
    """Get global output formatter instance."""
    return _output_formatter


def set_output_format(format_type: str, **kwargs) -> None:
    """Set global output format.

    Args:
        format_type: Output format type
        **kwargs: Additional formatter options
    """
    global _output_formatter
    _output_formatter = OutputFormatter(format_type, **kwargs)


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string
    """
    if size_bytes == 0:
        return "0 B"

    units = ['B', 'KB', 'MB', 'GB']
    unit_index = 0
    size = float(size_bytes)

    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    return f"{size:.1f} {units[unit_index]}"

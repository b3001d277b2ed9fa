"""Logging formatters for terminal output."""

import logging


class StreamFormatter(logging.Formatter):
    """Logging formatter that prefixes problems with their level name.

    Informational records are printed as plain lines so command output reads
    naturally. Warnings and errors get a ``Warning:`` / ``Error:`` prefix.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a level prefix for warnings and errors.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message
        """
        msg = super().format(record)

        if record.levelno >= logging.ERROR:
            return f"Error: {msg}"
        elif record.levelno >= logging.WARNING:
            return f"Warning: {msg}"

        return msg

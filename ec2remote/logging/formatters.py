"""Logging formatters for console output."""

import logging


class StreamFormatter(logging.Formatter):
    """Logging formatter that prepends the instance ID carried by a record."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with an instance prefix if present.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message, prefixed with ``[<instance-id>]`` when the
            record was logged with an ``instance_id`` extra
        """
        msg = super().format(record)
        instance_id = getattr(record, "instance_id", None)

        if instance_id:
            return f"[{instance_id}] {msg}"

        return msg

"""Exceptions raised by bot operations and mapped to HTTP statuses in main."""


class BotError(Exception):
    """Base class for bot operation failures."""


class TransportError(BotError):
    """A Telegram Bot API call failed."""

    def __init__(self, method: str, detail: str):
        super().__init__(f"{method} failed: {detail}")
        self.method = method
        self.detail = detail


class ReportNotFound(BotError):
    """The requested report does not exist upstream (or could not be fetched)."""

    def __init__(self, report_id: int):
        super().__init__(f"report {report_id} not found")
        self.report_id = report_id

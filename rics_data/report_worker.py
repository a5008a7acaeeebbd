"""Periodic job that reports queued data and uploads archives."""

from __future__ import annotations

from typing import Protocol


class _Service(Protocol):
    def report_data(self) -> None: ...

    def upload_file(self) -> object: ...


class ReportWorker:
    """Drives the data-collection service from a timer thread."""

    def __init__(self, service: _Service) -> None:
        self._service = service

    def report_data(self) -> None:
        self._service.report_data()

    def upload_file(self) -> None:
        self._service.upload_file()

    def run_once(self) -> None:
        """Report queued data, then upload the next archive."""
        self.report_data()
        self.upload_file()
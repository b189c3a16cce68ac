"""Structured JSON logger for storyboard session observability.

This module provides structured logging that writes JSON-formatted entries
to storyboard.log in the session's data directory. Each entry is a single
JSON object on one line.

Log Event Types:
- pipeline_start: A generation pipeline begins (script, image, video, ...)
- pipeline_complete: A pipeline finished successfully
- pipeline_failure: A pipeline failed; the error was recorded in the draft
- session_event: Draft lifecycle events (load, save, import, export, new)
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


LOG_FILENAME = "storyboard.log"


class StructuredJSONLogger:
    """Structured JSON logger that writes to storyboard.log.

    Every entry follows the format:

    {
        "event": "pipeline_start|pipeline_complete|pipeline_failure|session_event",
        "timestamp": "ISO8601",
        ...additional fields based on event type...
    }

    The logger maintains both a file handle for JSON logs and a console
    handler for human-readable logs.
    """

    def __init__(self, output_directory: Optional[str] = None):
        """Initialize the structured JSON logger.

        Args:
            output_directory: Directory where storyboard.log will be written.
                            If None, only console logging is enabled.
        """
        self.output_directory = output_directory
        self.log_file_path = None
        self.json_file_handle = None

        if output_directory:
            self._setup_log_file(output_directory)

        self.logger = logging.getLogger(__name__)
        if not self.logger.handlers:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)
            self.logger.setLevel(logging.INFO)

    def _setup_log_file(self, output_directory: str) -> None:
        output_path = Path(output_directory)
        output_path.mkdir(parents=True, exist_ok=True)

        self.log_file_path = output_path / LOG_FILENAME
        self.json_file_handle = open(self.log_file_path, 'a', encoding='utf-8')

    def _write_json_log(self, log_entry: Dict[str, Any]) -> None:
        if self.json_file_handle:
            json_line = json.dumps(log_entry, ensure_ascii=False, default=str)
            self.json_file_handle.write(json_line + '\n')
            self.json_file_handle.flush()

    @staticmethod
    def _timestamp() -> str:
        return datetime.now(timezone.utc).isoformat()

    def log_pipeline_start(
        self,
        pipeline: str,
        target: str,
        input_summary: str
    ) -> None:
        """Log the start of a generation pipeline.

        Args:
            pipeline: Pipeline name (e.g. "ImageGeneration")
            target: What the pipeline works on (e.g. "scene 2 start")
            input_summary: Brief summary of the input
        """
        self._write_json_log({
            "event": "pipeline_start",
            "pipeline": pipeline,
            "target": target,
            "timestamp": self._timestamp(),
            "input_summary": input_summary
        })
        self.logger.info(f"Starting {pipeline} for {target}: {input_summary}")

    def log_pipeline_complete(
        self,
        pipeline: str,
        target: str,
        duration_ms: float,
        output_summary: str,
        status: str = "SUCCESS"
    ) -> None:
        """Log successful completion of a pipeline.

        Args:
            pipeline: Pipeline name
            target: What the pipeline worked on
            duration_ms: Execution duration in milliseconds
            output_summary: Brief summary of the result
            status: Execution status
        """
        self._write_json_log({
            "event": "pipeline_complete",
            "pipeline": pipeline,
            "target": target,
            "timestamp": self._timestamp(),
            "duration_ms": round(duration_ms, 2),
            "output_summary": output_summary,
            "status": status
        })
        self.logger.info(
            f"Completed {pipeline} for {target} in {duration_ms:.2f}ms: {output_summary}"
        )

    def log_pipeline_failure(
        self,
        pipeline: str,
        target: str,
        error_message: str,
        error_code: str,
        duration_ms: Optional[float] = None
    ) -> None:
        """Log a pipeline failure.

        Args:
            pipeline: Pipeline name
            target: What the pipeline worked on
            error_message: Human-readable error message
            error_code: Machine-readable error code
            duration_ms: Optional execution duration in milliseconds
        """
        log_entry = {
            "event": "pipeline_failure",
            "pipeline": pipeline,
            "target": target,
            "timestamp": self._timestamp(),
            "error_message": error_message,
            "error_code": error_code
        }

        if duration_ms is not None:
            log_entry["duration_ms"] = round(duration_ms, 2)

        self._write_json_log(log_entry)
        self.logger.error(f"Failed {pipeline} for {target} [{error_code}]: {error_message}")

    def log_session_event(self, event: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Log a draft lifecycle event.

        Args:
            event: Event name (load, save, import, export, new, close)
            details: Extra fields for the entry
        """
        log_entry = {
            "event": "session_event",
            "session_event": event,
            "timestamp": self._timestamp()
        }
        if details:
            log_entry.update(details)

        self._write_json_log(log_entry)
        self.logger.info(f"Session {event}")

    def close(self) -> None:
        """Close the log file handle."""
        if self.json_file_handle:
            self.json_file_handle.close()
            self.json_file_handle = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

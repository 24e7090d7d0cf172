import logging
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from contextvars import ContextVar

# Correlation values for the current request / submission task
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
resume_id_var: ContextVar[str] = ContextVar("resume_id", default="")

class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id

        resume_id = resume_id_var.get()
        if resume_id:
            log_record["resume_id"] = resume_id

        if not log_record.get("timestamp"):
            from datetime import datetime, timezone
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        if log_record.get("level"):
            log_record["level"] = log_record["level"].upper()
        else:
            log_record["level"] = record.levelname

def setup_logging(level: str = "INFO"):
    logger = logging.getLogger()
    # Re-running (tests, reload) must not stack handlers
    for handler in list(logger.handlers):
        if isinstance(handler.formatter, CustomJsonFormatter):
            logger.removeHandler(handler)

    log_handler = logging.StreamHandler()
    formatter = CustomJsonFormatter("%(timestamp) %(level) %(name) %(message)")
    log_handler.setFormatter(formatter)
    logger.addHandler(log_handler)
    logger.setLevel(level)

    # Suppress verbose logs from some libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

"""Minimal example: fill a small log file until it rotates into gzip backups."""

from __future__ import annotations

import logging
import time

import rotalog


def main() -> None:
    rotalog.configure(
        {
            "paths": {"log_dir": "example-logs"},
            "file_logger": {
                "max_size_bytes": 4096,
                "compress_backups": True,
                "delete_old_enabled": True,
                "age": 7,
                "age_type": "days",
            },
            "capture": {"stdlib_logging": True, "level": "INFO"},
        }
    )

    logger = logging.getLogger("examples.orders")
    logger.setLevel(logging.INFO)
    for order_id in range(1, 200):
        logger.info("processed order %s total=%.2f", order_id, order_id * 19.99)
        if order_id % 50 == 0:
            rotalog.log(f"checkpoint after {order_id} orders", rotalog.Severity.WARNING)
            time.sleep(0.1)

    rotalog.shutdown()


if __name__ == "__main__":
    main()

from __future__ import annotations

from flask import Flask, jsonify

from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        scheduler = container.outbox_scheduler
        return jsonify(
            {
                "status": "ok",
                "outbox": {
                    **container.outbox_metrics.snapshot(),
                    "scheduler_running": bool(scheduler and scheduler.is_running),
                },
            }
        )

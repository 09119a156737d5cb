import logging

from core.contracts import CaptureRecorded, PhaseChanged, RunClosed, RunComplete

from .manager import Event, StatusSnapshot

L = logging.getLogger("stillcheck.output.console")


class ConsoleOutput:
    """Headless presentation: status lines and verdicts go to the log."""

    def start(self):
        pass

    def stop(self):
        pass

    def publish(self, event: Event, snapshot: StatusSnapshot):
        if isinstance(event, PhaseChanged):
            L.info("[%s] %s", event.phase.value, event.status_text.replace("\n", " | "))
        elif isinstance(event, CaptureRecorded):
            L.info("capture %d/3: %s", event.index, event.plate or "no plate")
        elif isinstance(event, RunComplete):
            for line in snapshot.message.splitlines():
                L.info("%s", line)
        elif isinstance(event, RunClosed) and event.reason != "completed":
            L.info("run %d %s", event.run_id, event.reason)


__all__ = ["ConsoleOutput"]

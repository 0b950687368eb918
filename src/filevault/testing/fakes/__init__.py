"""Testing fakes – in-memory doubles for filevault ports."""
from filevault.kernel.time import FrozenClock
from filevault.testing.fakes.antivirus import ScriptedAntivirus
from filevault.testing.fakes.audit import AccessRecord, RecordingAuditSink
from filevault.testing.fakes.clock import FakeClock
from filevault.testing.fakes.events import RecordingEventPublisher

__all__ = [
    "AccessRecord",
    "FakeClock",
    "FrozenClock",
    "RecordingAuditSink",
    "RecordingEventPublisher",
    "ScriptedAntivirus",
]

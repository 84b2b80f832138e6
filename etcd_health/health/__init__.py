"""Health subsystem: member probe, cycle collector, scheduler."""

from .collector import CycleReport, CycleState, HealthCollector
from .engine import MEASUREMENT, HealthRecord, member_url, probe_member
from .scheduler import CollectorScheduler

"""Detection and report backends.

Both backends shipped here are placeholders. ``MockDetectionService`` does not
look at the image at all: its verdict and confidence are random numbers, kept
that way on purpose until a real detector is plugged in behind
``DetectionService``. ``MockReportService`` only records reports in memory.
"""

from __future__ import annotations

import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

from .media import ImageHandle

logger = logging.getLogger(__name__)

MANIPULATED_DETAILS = (
    "Our analysis found inconsistencies in facial boundaries, lighting and "
    "texture that are typical of AI-generated or manipulated images."
)
AUTHENTIC_DETAILS = (
    "No significant signs of manipulation were found. Lighting, edges and "
    "textures appear consistent with an unaltered photograph."
)


@dataclass(frozen=True)
class DetectionResult:
    is_manipulated: bool
    confidence: int
    details: str

    def as_dict(self) -> dict:
        return {
            "isManipulated": self.is_manipulated,
            "confidence": self.confidence,
            "details": self.details,
        }


@dataclass(frozen=True)
class Report:
    email: str
    description: str
    image: ImageHandle


@dataclass(frozen=True)
class Ack:
    reference: str
    submitted_at: str
    submitted: bool = True

    def as_dict(self) -> dict:
        return {"reference": self.reference, "submittedAt": self.submitted_at, "submitted": self.submitted}


class DetectionService(ABC):
    @abstractmethod
    def analyze(self, image: ImageHandle) -> DetectionResult:
        raise NotImplementedError


class ReportService(ABC):
    @abstractmethod
    def submit(self, report: Report) -> Ack:
        raise NotImplementedError


class MockDetectionService(DetectionService):
    """Stub detector returning a random verdict after an artificial delay.

    Roughly ``manipulated_rate`` of the calls report a manipulated image;
    confidence is uniform over 70..99. Pass a seeded ``random.Random`` to get
    repeatable answers.
    """

    def __init__(
        self,
        *,
        delay: float = 0.0,
        rng: random.Random | None = None,
        manipulated_rate: float = 0.3,
    ) -> None:
        self.delay = delay
        self.rng = rng or random.Random()
        self.manipulated_rate = manipulated_rate

    def analyze(self, image: ImageHandle) -> DetectionResult:
        if self.delay > 0:
            time.sleep(self.delay)

        is_manipulated = self.rng.random() < self.manipulated_rate
        result = DetectionResult(
            is_manipulated=is_manipulated,
            confidence=self.rng.randint(70, 99),
            details=MANIPULATED_DETAILS if is_manipulated else AUTHENTIC_DETAILS,
        )
        logger.info(
            "mock detection for %s: manipulated=%s confidence=%d",
            image.filename or "-",
            result.is_manipulated,
            result.confidence,
        )
        return result


@dataclass
class MockReportService(ReportService):
    delay: float = 0.0
    submitted: list[Report] = field(default_factory=list)

    def submit(self, report: Report) -> Ack:
        if self.delay > 0:
            time.sleep(self.delay)

        self.submitted.append(report)
        ack = Ack(
            reference=uuid4().hex[:12],
            submitted_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )
        logger.info("recorded report %s from %s", ack.reference, report.email)
        return ack

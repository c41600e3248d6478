"""Model lifecycle phases and per-model phase assignments."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from modeler.constants.modeling import LIFECYCLE_PHASES
from modeler.errors import ConflictError, NotFoundError, ValidationError
from modeler.models import DataModel, LifecyclePhase, ModelLifecycleAssignment

logger = logging.getLogger(__name__)


def ensure_phases(db: Session) -> List[LifecyclePhase]:
    """Create any missing standard phases and return all phases in sequence order."""
    existing = {phase.name: phase for phase in db.query(LifecyclePhase).all()}
    created = 0
    for sequence, (name, description) in enumerate(LIFECYCLE_PHASES, start=1):
        if name in existing:
            continue
        phase = LifecyclePhase(name=name, sequence=sequence, description=description)
        db.add(phase)
        existing[name] = phase
        created += 1
    if created:
        db.flush()
        logger.info("Seeded %d lifecycle phases", created)
    return sorted(existing.values(), key=lambda phase: phase.sequence)


def assign_phase(
    db: Session,
    model: DataModel,
    phase_name: str,
    *,
    status: str = "not_started",
    owner: Optional[str] = None,
    notes: Optional[str] = None,
) -> ModelLifecycleAssignment:
    phases = {phase.name: phase for phase in ensure_phases(db)}
    phase = phases.get(phase_name.strip().lower())
    if phase is None:
        raise NotFoundError(
            f"Unknown lifecycle phase '{phase_name}'",
            {"allowed": [name for name, _ in LIFECYCLE_PHASES]},
            from_body=True,
        )
    existing = (
        db.query(ModelLifecycleAssignment)
        .filter(ModelLifecycleAssignment.model_id == model.id, ModelLifecycleAssignment.phase_id == phase.id)
        .first()
    )
    if existing is not None:
        raise ConflictError(
            f"Model already has a '{phase.name}' lifecycle assignment",
            {"assignment_id": str(existing.id)},
        )
    assignment = ModelLifecycleAssignment(
        model_id=model.id, phase_id=phase.id, status=status, owner=owner, notes=notes
    )
    db.add(assignment)
    db.flush()
    return assignment


def approve_assignment(db: Session, assignment: ModelLifecycleAssignment, approved_by: str) -> ModelLifecycleAssignment:
    if assignment.status != "completed":
        raise ValidationError(
            "Only completed lifecycle phases can be approved",
            {"assignment_id": str(assignment.id), "status": assignment.status},
        )
    assignment.approved_by = approved_by.strip()
    assignment.approved_at = datetime.now(timezone.utc)
    db.flush()
    logger.info("Lifecycle assignment %s approved by %s", assignment.id, assignment.approved_by)
    return assignment

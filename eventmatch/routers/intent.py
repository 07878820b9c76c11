from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from eventmatch.base.database import get_db
from eventmatch.base.models import IntentComputeRequest, IntentComputeResponse, IntentResult, ParticipantIntentInput
from eventmatch.base.security import get_current_user_id
from eventmatch.services.intent_engine_service import IntentEngineService, compute_participant_vector

router = APIRouter(tags=["Intent"])
intent_engine = IntentEngineService()


@router.post("/compute", summary="Recompute intent vectors for an event", response_model=IntentComputeResponse)
def compute_event_vectors(
    req: IntentComputeRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if not req.event_id:
        raise HTTPException(status_code=400, detail="eventId required")
    return intent_engine.compute_event_vectors(db, req.event_id, user_id)


@router.post("/preview", summary="Intent vector for ad-hoc profile data", response_model=IntentResult)
def preview_vector(req: ParticipantIntentInput):
    return compute_participant_vector(req)

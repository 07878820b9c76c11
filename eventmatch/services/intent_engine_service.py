# eventmatch/services/intent_engine_service.py

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventmatch.base.models import IntentComputeResponse, IntentResult, ParticipantIntentInput
from eventmatch.base.security import is_event_organizer
from eventmatch.models.tables import Event, Participant

logger = logging.getLogger("intent_engine")

# === Intent Taxonomy ===
INTENT_KEYS = ("buying", "selling", "investing", "partnering", "learning", "networking")
_KEY_INDEX = {key: i for i, key in enumerate(INTENT_KEYS)}

EXPLICIT_WEIGHT = 3.0
PROFILE_WEIGHT = 1.5
LOOKING_OFFERING_WEIGHT = 2.0
MAX_CONFIDENCE = 95


def _signals(pairs):
    return [(re.compile(pattern, re.IGNORECASE), intent, weight) for pattern, intent, weight in pairs]


TITLE_SIGNALS = _signals([
    (r"\b(procurement|purchasing|sourcing|buyer|supply chain)\b", "buying", 20),
    (r"\b(operations|logistics|category manager)\b", "buying", 12),
    (r"\b(CTO|CIO|IT Director|IT Manager|tech lead)\b", "buying", 8),

    (r"\b(sales|account executive|account manager|business development|BD)\b", "selling", 20),
    (r"\b(marketing|growth|revenue|commercial)\b", "selling", 12),
    (r"\b(founder|co-founder|CEO|managing director)\b", "selling", 10),

    (r"\b(investor|venture|VC|angel|investment|portfolio|fund)\b", "investing", 25),
    (r"\b(private equity|PE|capital|asset management)\b", "investing", 20),

    (r"\b(partnership|alliances|strategic|channel|ecosystem)\b", "partnering", 20),
    (r"\b(business development|BD|expansion)\b", "partnering", 10),

    (r"\b(student|researcher|academic|professor|analyst|junior|intern)\b", "learning", 20),
    (r"\b(exploring|learning|curious)\b", "learning", 15),

    (r"\b(consultant|advisor|freelance|independent|community)\b", "networking", 15),
    (r"\b(HR|people|talent|recruiter|recruiting)\b", "networking", 10),
])

BIO_SIGNALS = _signals([
    (r"\b(looking for|searching for|need|seeking)\s+(a\s+)?(supplier|vendor|solution|tool|platform|provider|service)", "buying", 25),
    (r"\b(evaluating|comparing|reviewing)\s+(solutions|options|vendors|tools)", "buying", 20),

    (r"\b(we (offer|provide|deliver|build|help)|our (solution|platform|product|service))\b", "selling", 25),
    (r"\b(helping (companies|businesses|teams|organizations))\b", "selling", 20),
    (r"\b(SaaS|B2B|platform|software|solution)\b", "selling", 8),

    (r"\b(invest(ing|ment)?|fund(ing|ed)?|portfolio|deal flow|due diligence)\b", "investing", 20),
    (r"\b(startup|seed|series [A-D]|raise|round)\b", "investing", 12),

    (r"\b(partner(ship|ing)?|collaborat(e|ion)|joint venture|alliance|distribution)\b", "partnering", 20),
    (r"\b(looking for.{0,30}partner|open to.{0,30}collaborat)", "partnering", 25),

    (r"\b(learn(ing)?|discover|explore|understand|research|study)\b", "learning", 12),
    (r"\b(best practices|trends|insights|knowledge)\b", "learning", 10),

    (r"\b(connect(ing)?|network(ing)?|meet(ing)?\s+(like-minded|people|professionals))\b", "networking", 15),
    (r"\b(expand.{0,20}(network|connections)|build.{0,20}relationships)\b", "networking", 15),
])


@dataclass
class IntentSignal:
    vector: np.ndarray
    confidence: int
    weight: float = 1.0


def _round_half_up(values, digits: int = 0):
    factor = 10 ** digits
    return np.floor(np.asarray(values, dtype=np.float64) * factor + 0.5) / factor


def empty_vector() -> np.ndarray:
    return np.zeros(len(INTENT_KEYS), dtype=np.float64)


def normalize_vector(raw: np.ndarray) -> np.ndarray:
    """Probabilities summing to ~1.0 (3 decimals); uniform when there is no signal."""
    total = float(np.sum(raw))
    if total == 0:
        return np.full(len(INTENT_KEYS), 1.0 / len(INTENT_KEYS))
    return _round_half_up(raw / total, 3)


def to_dict(vector: np.ndarray) -> Dict[str, float]:
    return {key: float(vector[i]) for i, key in enumerate(INTENT_KEYS)}


def from_explicit_intents(intents: Iterable[str]) -> IntentSignal:
    raw = empty_vector()
    valid = [i for i in intents if i in _KEY_INDEX]
    if not valid:
        return IntentSignal(normalize_vector(raw), 0)

    for intent in valid:
        raw[_KEY_INDEX[intent]] += 40

    # 1 intent = 50, 2 = 65, 3+ = 75
    confidence = min(50 + (len(valid) - 1) * 15, 75)
    return IntentSignal(normalize_vector(raw), confidence)


def from_profile_signals(title: Optional[str], bio: Optional[str], company_name: Optional[str] = None) -> IntentSignal:
    raw = empty_vector()
    signal_count = 0

    for text, patterns in ((title, TITLE_SIGNALS), (bio, BIO_SIGNALS)):
        if not text:
            continue
        for pattern, intent, weight in patterns:
            if pattern.search(text):
                raw[_KEY_INDEX[intent]] += weight
                signal_count += 1

    # Profile text alone never exceeds 60
    confidence = min(signal_count * 12, 60)
    return IntentSignal(normalize_vector(raw), confidence)


def merge_signals(signals: Sequence[IntentSignal]) -> IntentSignal:
    merged = empty_vector()
    total_weight = 0.0

    for signal in signals:
        if signal.confidence == 0:
            continue
        effective = signal.weight * (signal.confidence / 100)
        merged += signal.vector * effective
        total_weight += effective

    if total_weight == 0:
        return IntentSignal(normalize_vector(empty_vector()), 0)

    merged /= total_weight

    weights = np.array([s.weight for s in signals], dtype=np.float64)
    confidences = np.array([s.confidence for s in signals], dtype=np.float64)
    avg_confidence = float(np.sum(confidences * weights) / np.sum(weights))
    confidence = min(int(_round_half_up(avg_confidence)), MAX_CONFIDENCE)

    return IntentSignal(normalize_vector(merged), confidence)


def compute_participant_vector(participant: ParticipantIntentInput) -> IntentResult:
    signals: List[IntentSignal] = []

    explicit = participant.intents or ([participant.intent] if participant.intent else [])
    if explicit:
        signal = from_explicit_intents(explicit)
        signal.weight = EXPLICIT_WEIGHT
        signals.append(signal)

    if participant.title or participant.bio or participant.company_name:
        profile_signal = from_profile_signals(participant.title, participant.bio, participant.company_name)
        if profile_signal.confidence > 0:
            profile_signal.weight = PROFILE_WEIGHT
            signals.append(profile_signal)

    looking_offering = ". ".join(filter(None, [
        f"looking for {participant.looking_for}" if participant.looking_for else "",
        f"we offer {participant.offering}" if participant.offering else "",
    ]))
    if looking_offering:
        lo_signal = from_profile_signals(None, looking_offering)
        if lo_signal.confidence > 0:
            lo_signal.weight = LOOKING_OFFERING_WEIGHT
            signals.append(lo_signal)

    if not signals:
        return IntentResult(vector=to_dict(normalize_vector(empty_vector())), confidence=0)

    result = merge_signals(signals)
    return IntentResult(vector=to_dict(result.vector), confidence=result.confidence)


class IntentEngineService:
    def _to_input(self, participant: Participant) -> ParticipantIntentInput:
        profile = participant.profile
        return ParticipantIntentInput(
            intents=participant.intents or None,
            intent=participant.intent,
            looking_for=participant.looking_for,
            offering=participant.offering,
            title=profile.title if profile else None,
            bio=profile.bio if profile else None,
            company_name=profile.company_name if profile else None,
        )

    def compute_event_vectors(self, db: Session, event_id: str, user_id: str) -> IntentComputeResponse:
        event = db.get(Event, event_id)
        if not is_event_organizer(event, user_id):
            raise HTTPException(status_code=403, detail="Not authorized")

        participants = db.query(Participant).filter_by(event_id=event_id, status="approved").all()

        updated = 0
        for participant in participants:
            result = compute_participant_vector(self._to_input(participant))
            participant.intent_vector = result.vector
            participant.intent_confidence = result.confidence
            try:
                db.commit()
                updated += 1
            except SQLAlchemyError as e:
                db.rollback()
                logger.warning(f"[IntentEngine] Failed to store vector for participant {participant.id}: {e}")

        logger.info(f"[IntentEngine] Event {event_id}: {updated}/{len(participants)} vectors updated")
        return IntentComputeResponse(total=len(participants), updated=updated)

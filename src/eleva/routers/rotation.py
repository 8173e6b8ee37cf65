from __future__ import annotations

from fastapi import APIRouter, Depends

from ..errors import PersistenceError
from ..logging import logger
from ..models.rotation import RotationPickResponse, RotationWeights
from ..rotation import RotationPicker, registry
from ..store import AppFirestoreStore, get_store

router = APIRouter(tags=["rotation"])


def _weights_loader(plan_id: str, store: AppFirestoreStore):
    def _load() -> dict[str, float]:
        try:
            return store.plans.get_weights(plan_id)
        except Exception as exc:
            logger.error("rotation_weights_fetch_failed", study_plan_id=plan_id, error=repr(exc))
            raise PersistenceError("Não foi possível carregar os pesos do plano.") from exc

    return _load


def get_picker(plan_id: str, store: AppFirestoreStore = Depends(get_store)) -> RotationPicker:
    return registry.get(plan_id, _weights_loader(plan_id, store))


@router.get("/weights", response_model=RotationWeights)
def get_weights(plan_id: str, store: AppFirestoreStore = Depends(get_store)) -> RotationWeights:
    return RotationWeights(weights=_weights_loader(plan_id, store)())


@router.put("/weights", response_model=RotationWeights)
def put_weights(
    plan_id: str, req: RotationWeights, store: AppFirestoreStore = Depends(get_store)
) -> RotationWeights:
    try:
        saved = store.plans.set_weights(plan_id, req.weights)
    except Exception as exc:
        logger.error("rotation_weights_save_failed", study_plan_id=plan_id, error=repr(exc))
        raise PersistenceError("Falha ao salvar os pesos do plano.") from exc
    return RotationWeights(weights=saved)


@router.post("/next", response_model=RotationPickResponse, summary="Pick and remember the next discipline")
def next_discipline(picker: RotationPicker = Depends(get_picker)) -> RotationPickResponse:
    picked = picker.next()
    return RotationPickResponse(discipline=picked, last_picked=picker.last_picked)


@router.get("/peek", response_model=RotationPickResponse, summary="Preview a pick without remembering it")
def peek_discipline(picker: RotationPicker = Depends(get_picker)) -> RotationPickResponse:
    return RotationPickResponse(discipline=picker.peek(), last_picked=picker.last_picked)


@router.post("/reset", response_model=RotationPickResponse)
def reset_rotation(picker: RotationPicker = Depends(get_picker)) -> RotationPickResponse:
    picker.reset()
    return RotationPickResponse(discipline=None, last_picked=None)

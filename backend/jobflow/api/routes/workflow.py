"""Workflow API Routes - Read-only view of the job order state machine"""
from fastapi import APIRouter, Depends

from ..deps import get_current_user_dep, get_workflow_engine
from ...domain.models import ActorContext
from ...engine.workflow_engine import WorkflowEngine

router = APIRouter()


@router.get("")
async def get_workflow(
    actor: ActorContext = Depends(get_current_user_dep),
    engine: WorkflowEngine = Depends(get_workflow_engine)
):
    """Transition table, role permissions and terminal statuses"""
    workflow = engine.definition.to_dict()
    workflow["my_permitted_statuses"] = [s.value for s in engine.permitted_statuses(actor.role)]
    return workflow

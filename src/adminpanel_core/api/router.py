from __future__ import annotations

from fastapi import APIRouter, Depends

from adminpanel_core.api.health import router as health_router
from adminpanel_core.api.session import router as session_router
from adminpanel_core.api.variables import router as variables_router
from adminpanel_core.auth import require_session

router = APIRouter(prefix="/api")

# Login must stay reachable without a session.
router.include_router(session_router)
router.include_router(health_router, dependencies=[Depends(require_session)])
router.include_router(variables_router, dependencies=[Depends(require_session)])

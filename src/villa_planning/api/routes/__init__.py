from fastapi import APIRouter

from . import absences, appointments, assignment, counters, on_call, planning, templates, villas

api_router = APIRouter()

api_router.include_router(villas.router, tags=["villas"])
api_router.include_router(planning.router, prefix="/planning", tags=["planning"])
api_router.include_router(assignment.router, prefix="/planning-assignment", tags=["planning_assignment"])
api_router.include_router(templates.router, prefix="/templates", tags=["templates"])
api_router.include_router(absences.router, prefix="/absences", tags=["absences"])
api_router.include_router(counters.router, prefix="/counters", tags=["counters"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(on_call.router, prefix="/on-call", tags=["on_call"])

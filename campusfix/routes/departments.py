"""Department performance metrics and the campus-wide support ledger."""

from fastapi import APIRouter, Depends, Query

from campusfix.auth import Actor, get_current_actor
from campusfix.datetime_utils import utcnow
from campusfix.dependencies import UnitOfWorkFactory, get_uow_factory, run_in_uow
from campusfix.exceptions import AuthorizationError, NotFoundError
from campusfix.models import UserRole
from campusfix.schemas import DepartmentMetricsResponse, SupportResponse, SystemMetricsResponse
from campusfix.services.metrics_service import department_metrics, system_metrics

router = APIRouter(prefix="/api", tags=["departments"])


@router.get("/departments", response_model=list[DepartmentMetricsResponse])
async def list_departments(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def operation(uow):
        departments = await uow.departments.list_all()
        issues = await uow.issues.list_all()
        now = utcnow()
        return [
            DepartmentMetricsResponse.model_validate(department_metrics(d, issues, now))
            for d in departments
        ]

    return await run_in_uow(uow_factory, operation, commit=False)


@router.get("/departments/supports", response_model=list[SupportResponse])
async def list_all_supports(
    limit: int = Query(500, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    """Every support on campus, oldest first. Admin only."""
    if actor.role != UserRole.ADMIN.value:
        raise AuthorizationError("list all supports", UserRole.ADMIN.value)

    async def operation(uow):
        supports = await uow.supports.list_all(limit=limit, offset=offset)
        return [SupportResponse.model_validate(s) for s in supports]

    return await run_in_uow(uow_factory, operation, commit=False)


@router.get("/departments/{department_id}", response_model=DepartmentMetricsResponse)
async def get_department(
    department_id: str,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def operation(uow):
        department = await uow.departments.get_by_id(department_id)
        if department is None:
            raise NotFoundError("Department", department_id)
        issues = await uow.issues.list_by_department(department_id)
        return DepartmentMetricsResponse.model_validate(
            department_metrics(department, issues, utcnow())
        )

    return await run_in_uow(uow_factory, operation, commit=False)


@router.get("/metrics", response_model=SystemMetricsResponse)
async def get_system_metrics(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def operation(uow):
        issues = await uow.issues.list_all()
        return SystemMetricsResponse.model_validate(system_metrics(issues, utcnow()))

    return await run_in_uow(uow_factory, operation, commit=False)

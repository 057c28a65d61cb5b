from fastapi import APIRouter
from pharmacy.core.exceptions import ErrorResponse
from pharmacy.api.v1.inventory import routes as inventory
from pharmacy.api.v1.sales import routes as sales
from pharmacy.api.v1.prescriptions import routes as prescriptions
from pharmacy.api.v1.dashboard import routes as dashboard
from pharmacy.api.v1.reports import routes as reports
from pharmacy.api.v1.notifications import routes as notifications

# Documented once for every route; bodies come from create_error_response
error_responses = {
    400: {"model": ErrorResponse, "description": "Validation or stock failure"},
    404: {"model": ErrorResponse, "description": "Resource not found"},
    409: {"model": ErrorResponse, "description": "Conflict"},
}

api_router = APIRouter(responses=error_responses)
api_router.include_router(inventory.router)
api_router.include_router(sales.router, prefix="/sales", tags=["sales"])
api_router.include_router(prescriptions.router, prefix="/prescriptions", tags=["prescriptions"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])

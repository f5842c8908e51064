from fastapi import APIRouter, Depends

from bilty.api.bearer import bearer_user
from bilty.src.db import sessionMaker
from bilty.src import exceptions, validators
from bilty.src.enums import Capability
from bilty.src.schemas import DashboardStats
from bilty.src.store import dataStore
from bilty.src.functions import fuseExceptionResponses
from bilty.src.urls import URL_DASHBOARD

route_user = APIRouter()


## API endpoints
@route_user.get(
    URL_DASHBOARD,
    tags=["Dashboard"],
    response_model=DashboardStats,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Fetch the dashboard figures, recomputed on every request.
    Requires a role with the DASHBOARD capability.
    - bilties_today: bilties created today (Asia/Kolkata calendar day)
    - active_vehicles: vehicles in ACTIVE status
    - total_advance: advance summed over every bilty
    - net_outstanding: net amount of PENDING and OVERDUE billing records
    - supplier_dispatch: per supplier, the share of bilties whose product plant
      equals the supplier's plant name, as a percentage (0 when there are no bilties)
    """,
)
async def fetch_dashboard(bearer=Depends(bearer_user)):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        validators.permission(token.role, Capability.DASHBOARD)

        return dataStore.dashboardStats()
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()

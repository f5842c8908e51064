from fastapi import FastAPI
from bilty.api import (
    account,
    seller,
    supplier,
    vehicle,
    bilty,
    billing,
    billing_record,
    schedule,
    dashboard,
)


# ------------------------------------------------------
# Create the FastAPI app serving every staff role
# ------------------------------------------------------
app_user = FastAPI(title="User APP")


# ------------------------------------------------------
# User routers
# ------------------------------------------------------
app_user.include_router(account.route_user)
app_user.include_router(dashboard.route_user)

# Parties
app_user.include_router(seller.route_user)
app_user.include_router(supplier.route_user)

# Transport
app_user.include_router(vehicle.route_user)
app_user.include_router(bilty.route_user)
app_user.include_router(schedule.route_user)

# Billing
app_user.include_router(billing.route_user)
app_user.include_router(billing_record.route_user)

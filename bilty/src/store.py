"""
Process-wide cache of every entity, rebuilt from the database on start-up.

The cache is what list endpoints and the dashboard read. It is patched
only after a database transaction has been committed, so a failed write
never leaves it ahead of the database. Writes are last-writer-wins per id.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel
from sqlalchemy.orm.session import Session

from bilty.src import schemas, services
from bilty.src.constants import TMZ_SECONDARY
from bilty.src.db import Billing, BillingLine, Bilty, ProductDetail
from bilty.src.enums import BillingStatus, VehicleStatus
from bilty.src.functions import aggregateCratesBags, summarizeProducts

logger = logging.getLogger("uvicorn.error")

Item = TypeVar("Item", bound=BaseModel)


class EntityCache(Generic[Item]):
    """Entities keyed by id, most recently added first."""

    def __init__(self):
        self.items: OrderedDict[int, Item] = OrderedDict()

    def __len__(self) -> int:
        return len(self.items)

    def all(self) -> List[Item]:
        return list(self.items.values())

    def get(self, id: int | None) -> Optional[Item]:
        if id is None:
            return None
        return self.items.get(id)

    def add(self, item: Item) -> None:
        self.items[item.id] = item
        self.items.move_to_end(item.id, last=False)

    def replace(self, item: Item) -> None:
        if item.id in self.items:
            self.items[item.id] = item
        else:
            self.add(item)

    def remove(self, id: int) -> Optional[Item]:
        return self.items.pop(id, None)

    def reset(self, items: List[Item]) -> None:
        self.items = OrderedDict((item.id, item) for item in items)


def buildBilty(
    bilty: Bilty, productDetails: List[ProductDetail]
) -> schemas.BiltySchema:
    """
    Decorate a bilty row with its product lines and summary product.

    The aggregate crate/bag count is taken from the given lines.
    """
    lines = [schemas.ProductDetailSchema.model_validate(line) for line in productDetails]
    biltyData = schemas.BiltySchema.model_validate(bilty)
    return biltyData.model_copy(
        update={
            "product_details": lines,
            "product": summarizeProducts(lines),
            "total_crates_bags": aggregateCratesBags(
                line.total_crates_bags for line in lines
            ),
        }
    )


def buildBilling(billing: Billing, lines: List[BillingLine]) -> schemas.BillingSchema:
    billingData = schemas.BillingSchema.model_validate(billing)
    return billingData.model_copy(
        update={"lines": [schemas.BillingLineSchema.model_validate(l) for l in lines]}
    )


def localDate(timestamp: datetime):
    """Calendar date of a timestamp in the business timezone, naive means UTC."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(TMZ_SECONDARY).date()


class DataStore:
    def __init__(self):
        self.sellers: EntityCache[schemas.SellerSchema] = EntityCache()
        self.suppliers: EntityCache[schemas.SupplierSchema] = EntityCache()
        self.vehicles: EntityCache[schemas.VehicleSchema] = EntityCache()
        self.bilties: EntityCache[schemas.BiltySchema] = EntityCache()
        self.schedules: EntityCache[schemas.ScheduleSchema] = EntityCache()
        self.billingRecords: EntityCache[schemas.BillingRecordSchema] = EntityCache()
        self.billings: EntityCache[schemas.BillingSchema] = EntityCache()

    def load(self, session: Session) -> None:
        """
        Rebuild every cache from the database.

        Product lines and billing lines are read with one query each and
        grouped in memory.
        """
        self.sellers.reset(
            [schemas.SellerSchema.model_validate(r) for r in services.sellers.getAll(session)]
        )
        self.suppliers.reset(
            [
                schemas.SupplierSchema.model_validate(r)
                for r in services.suppliers.getAll(session)
            ]
        )
        self.vehicles.reset(
            [
                schemas.VehicleSchema.model_validate(r)
                for r in services.vehicles.getAll(session)
            ]
        )
        self.schedules.reset(
            [
                schemas.ScheduleSchema.model_validate(r)
                for r in services.schedules.getAll(session)
            ]
        )
        self.billingRecords.reset(
            [
                schemas.BillingRecordSchema.model_validate(r)
                for r in services.billingRecords.getAll(session)
            ]
        )

        productLines = services.productDetails.getGroupedByBilty(session)
        self.bilties.reset(
            [
                buildBilty(bilty, productLines.get(bilty.id, []))
                for bilty in services.bilties.getAll(session)
            ]
        )
        billingLines = services.billingLines.getGroupedByBilling(session)
        self.billings.reset(
            [
                buildBilling(billing, billingLines.get(billing.id, []))
                for billing in services.billings.getAll(session)
            ]
        )
        logger.info(
            f"Data store loaded {len(self.bilties)} bilties, "
            f"{len(self.vehicles)} vehicles and {len(self.billingRecords)} billing records"
        )

    # ---------------------------------------------------------------------------
    # Read helpers
    # ---------------------------------------------------------------------------
    def resolveBilty(self, bilty: schemas.BiltySchema) -> schemas.BiltySchema:
        """Fill the seller name and registration number, blank when missing."""
        seller = self.sellers.get(bilty.seller_id)
        vehicle = self.vehicles.get(bilty.vehicle_id)
        return bilty.model_copy(
            update={
                "seller_name": seller.name if seller else "",
                "vehicle_no": vehicle.vehicle_no if vehicle else "",
            }
        )

    def billingsOf(self, biltyId: int) -> List[schemas.BillingSchema]:
        return [b for b in self.billings.all() if b.bilty_id == biltyId]

    def removeBilty(self, biltyId: int) -> None:
        self.bilties.remove(biltyId)
        for billing in self.billingsOf(biltyId):
            self.billings.remove(billing.id)

    # ---------------------------------------------------------------------------
    # Dashboard
    # ---------------------------------------------------------------------------
    def dashboardStats(self, now: Optional[datetime] = None) -> schemas.DashboardStats:
        """
        Aggregate the dashboard figures over the cached entities.

        The supplier dispatch percentage counts bilties whose summary product
        plant equals the supplier's plant name. Bilty summaries carry an
        empty plant, so only suppliers without a plant name ever match.
        """
        today = localDate(now or datetime.now(timezone.utc))
        bilties = self.bilties.all()

        biltiesToday = [b for b in bilties if localDate(b.created_on) == today]
        activeVehicles = [
            v for v in self.vehicles.all() if v.status == VehicleStatus.ACTIVE
        ]
        totalAdvance = sum(b.advance for b in bilties)

        supplierDispatch = []
        for supplier in self.suppliers.all():
            matched = [b for b in bilties if b.product.plant == supplier.plant_name]
            percentage = len(matched) / len(bilties) * 100 if bilties else 0
            supplierDispatch.append(
                schemas.SupplierDispatch(
                    supplier_id=supplier.id,
                    name=supplier.name,
                    plant_name=supplier.plant_name,
                    percentage=percentage,
                )
            )

        netOutstanding = sum(
            r.net_amount
            for r in self.billingRecords.all()
            if r.status in (BillingStatus.PENDING, BillingStatus.OVERDUE)
        )
        return schemas.DashboardStats(
            bilties_today=len(biltiesToday),
            active_vehicles=len(activeVehicles),
            total_advance=totalAdvance,
            net_outstanding=netOutstanding,
            supplier_dispatch=supplierDispatch,
        )


dataStore = DataStore()

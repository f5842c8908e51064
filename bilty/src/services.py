"""
Data-access services, one per table.

Each service wraps the create, read, update and delete statements of its
table. Services only flush, the caller commits once per user action so
that a multi-table write is a single transaction.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.orm.session import Session

from bilty.src.db import (
    Billing,
    BillingLine,
    BillingRecord,
    Bilty,
    ORMbase,
    ProductDetail,
    Schedule,
    Seller,
    Supplier,
    Vehicle,
)


class TableService:
    def __init__(self, model):
        self.model = model

    def getAll(self, session: Session) -> List[ORMbase]:
        """All rows of the table, most recently created first."""
        return (
            session.query(self.model)
            .order_by(self.model.created_on.desc(), self.model.id.desc())
            .all()
        )

    def get(self, session: Session, id: int) -> Optional[ORMbase]:
        return session.query(self.model).filter(self.model.id == id).first()

    def create(self, session: Session, **values) -> ORMbase:
        row = self.model(**values)
        session.add(row)
        session.flush()
        return row

    def update(self, session: Session, row: ORMbase, **values) -> ORMbase:
        for field, value in values.items():
            if getattr(row, field) != value:
                setattr(row, field, value)
        session.flush()
        return row

    def delete(self, session: Session, row: ORMbase) -> None:
        session.delete(row)
        session.flush()


class VehicleService(TableService):
    def findByNumber(self, session: Session, vehicleNo: str) -> Optional[Vehicle]:
        """Find a vehicle by its normalized registration number."""
        return session.query(Vehicle).filter(Vehicle.vehicle_no == vehicleNo).first()


class ProductDetailService(TableService):
    def getByBiltyId(self, session: Session, biltyId: int) -> List[ProductDetail]:
        return (
            session.query(ProductDetail)
            .filter(ProductDetail.bilty_id == biltyId)
            .order_by(ProductDetail.id.asc())
            .all()
        )

    def getGroupedByBilty(self, session: Session) -> Dict[int, List[ProductDetail]]:
        """Every product line, grouped by bilty id, in insertion order."""
        grouped = defaultdict(list)
        for line in session.query(ProductDetail).order_by(ProductDetail.id.asc()):
            grouped[line.bilty_id].append(line)
        return grouped

    def createMany(
        self, session: Session, biltyId: int, lines: Iterable[dict]
    ) -> List[ProductDetail]:
        rows = [ProductDetail(bilty_id=biltyId, **line) for line in lines]
        session.add_all(rows)
        session.flush()
        return rows

    def deleteByBiltyId(self, session: Session, biltyId: int) -> int:
        return (
            session.query(ProductDetail)
            .filter(ProductDetail.bilty_id == biltyId)
            .delete(synchronize_session=False)
        )


class BillingService(TableService):
    def getByBiltyId(self, session: Session, biltyId: int) -> List[Billing]:
        return (
            session.query(Billing)
            .filter(Billing.bilty_id == biltyId)
            .order_by(Billing.id.asc())
            .all()
        )

    def deleteByBiltyId(self, session: Session, biltyId: int) -> int:
        return (
            session.query(Billing)
            .filter(Billing.bilty_id == biltyId)
            .delete(synchronize_session=False)
        )


class BillingLineService(TableService):
    def getByBillingId(self, session: Session, billingId: int) -> List[BillingLine]:
        return (
            session.query(BillingLine)
            .filter(BillingLine.billing_id == billingId)
            .order_by(BillingLine.id.asc())
            .all()
        )

    def getGroupedByBilling(self, session: Session) -> Dict[int, List[BillingLine]]:
        grouped = defaultdict(list)
        for line in session.query(BillingLine).order_by(BillingLine.id.asc()):
            grouped[line.billing_id].append(line)
        return grouped

    def deleteByBiltyId(self, session: Session, biltyId: int) -> int:
        """Delete the billing lines of every billing of a bilty."""
        billingIds = select(Billing.id).where(Billing.bilty_id == biltyId)
        return (
            session.query(BillingLine)
            .filter(BillingLine.billing_id.in_(billingIds))
            .delete(synchronize_session=False)
        )

    def deleteByProductDetailsOf(self, session: Session, biltyId: int) -> int:
        """Delete the billing lines referencing the product lines of a bilty."""
        productIds = select(ProductDetail.id).where(ProductDetail.bilty_id == biltyId)
        return (
            session.query(BillingLine)
            .filter(BillingLine.product_detail_id.in_(productIds))
            .delete(synchronize_session=False)
        )


sellers = TableService(Seller)
suppliers = TableService(Supplier)
vehicles = VehicleService(Vehicle)
bilties = TableService(Bilty)
productDetails = ProductDetailService(ProductDetail)
schedules = TableService(Schedule)
billingRecords = TableService(BillingRecord)
billings = BillingService(Billing)
billingLines = BillingLineService(BillingLine)

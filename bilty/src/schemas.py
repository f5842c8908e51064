from datetime import date as Date, datetime, time
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, computed_field

from bilty.src.constants import (
    DEFAULT_PRODUCT_NAME,
    DEFAULT_UNIT_TYPE,
)
from bilty.src.validators import formatVehicleNumber


class RequestInfo(BaseModel):
    method: str
    path: str


class HealthStatus(BaseModel):
    status: str
    version: str


class ErrorResponse(BaseModel):
    detail: Any


class ORMSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


## Parties
class SellerSchema(ORMSchema):
    id: int
    name: str
    mobile_number: str
    address: str
    shop_name: str
    updated_on: Optional[datetime] = None
    created_on: datetime


class SupplierSchema(ORMSchema):
    id: int
    name: str
    contact_number: str
    address: str
    product_category: str
    plant_name: str
    updated_on: Optional[datetime] = None
    created_on: datetime


## Transport
class VehicleSchema(ORMSchema):
    id: int
    transport_name: str
    driver_name: str
    vehicle_no: str
    driver_mobile: str
    transport_mobile: str
    date_time: Optional[datetime] = None
    product_info: str
    quantity: float
    advance: float
    status: int
    updated_on: Optional[datetime] = None
    created_on: datetime

    @computed_field
    @property
    def vehicle_no_display(self) -> str:
        return formatVehicleNumber(self.vehicle_no)


class ProductDetailSchema(ORMSchema):
    id: int
    bilty_id: int
    product_name: str
    unit_type: str
    quantity: float
    total_crates_bags: float
    remarks: Optional[str] = None
    created_on: datetime


class ProductSummary(BaseModel):
    """Summary product of a bilty, derived from its product lines."""

    name: str = DEFAULT_PRODUCT_NAME
    quantity: float = 0
    unit: str = DEFAULT_UNIT_TYPE
    plant: str = ""


class BiltySchema(ORMSchema):
    id: int
    bilty_number: str
    seller_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    delivery_address: str
    rent: float
    advance: float
    driver_tips: float
    total_crates_bags: float
    status: int
    updated_on: Optional[datetime] = None
    created_on: datetime
    product_details: List[ProductDetailSchema] = []
    product: ProductSummary = ProductSummary()
    # Resolved from the referenced seller and vehicle, blank when missing
    seller_name: str = ""
    vehicle_no: str = ""

    @computed_field
    @property
    def remaining(self) -> float:
        return max(0, self.rent - self.advance)


class ScheduleSchema(ORMSchema):
    id: int
    shift: int
    in_time: time
    out_time: time
    driver_id: str
    operating_days: int
    tax_deduction: float
    final_payment: float
    date: Date
    updated_on: Optional[datetime] = None
    created_on: datetime


## Billing
class BillingRecordSchema(ORMSchema):
    id: int
    vehicle_no: str
    date: Date
    amount: float
    seller_id: Optional[int] = None
    advance: float
    net_amount: float
    status: int
    updated_on: Optional[datetime] = None
    created_on: datetime


class BillingLineSchema(ORMSchema):
    id: int
    billing_id: int
    product_detail_id: int
    sold_price: float
    total_amount: float
    created_on: datetime


class BillingSchema(ORMSchema):
    id: int
    bilty_id: int
    commission: float
    driver_paid: float
    net_total: float
    billing_date: Date
    remark: Optional[str] = None
    created_on: datetime
    lines: List[BillingLineSchema] = []

    @computed_field
    @property
    def gross_total(self) -> float:
        return round(sum(line.total_amount for line in self.lines), 2)


## Dashboard
class SupplierDispatch(BaseModel):
    supplier_id: int
    name: str
    plant_name: str
    percentage: float


class DashboardStats(BaseModel):
    bilties_today: int
    active_vehicles: int
    total_advance: float
    net_outstanding: float
    supplier_dispatch: List[SupplierDispatch]


class BillingPreviewLine(BaseModel):
    product_detail_id: int
    product_name: str
    total_crates_bags: float
    sold_price: float
    total_amount: float


class BillingPreview(BaseModel):
    lines: List[BillingPreviewLine]
    gross_total: float
    commission: float
    driver_paid: float
    net_total: float

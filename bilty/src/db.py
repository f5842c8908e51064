from secrets import token_hex
from sqlalchemy import (
    TEXT,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Time,
    create_engine,
    event,
    func,
)
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

from bilty.src.constants import DB_URL
from bilty.src.enums import (
    BiltyStatus,
    BillingStatus,
    Role,
    Shift,
    VehicleStatus,
)


# Global DBMS variables
dbURL = DB_URL
isSQLite = dbURL.startswith("sqlite")
engine = create_engine(
    url=dbURL,
    echo=False,
    connect_args={"check_same_thread": False} if isSQLite else {},
)
sessionMaker = sessionmaker(bind=engine, expire_on_commit=False)
ORMbase = declarative_base()


if isSQLite:

    @event.listens_for(engine, "connect")
    def enableForeignKeys(dbapiConnection, connectionRecord):
        cursor = dbapiConnection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ----------------------------------- Session DB Models ---------------------------------------#
class UserToken(ORMbase):
    """
    Represents an authenticated session of one of the static users.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the token record.

        email (String(64)):
            Email of the user owning the session.
            Indexed for faster lookup and rotation of old sessions.

        role (Integer):
            Role of the user at login time.
            Stored as an integer enum (`Role`).

        access_token (String(64)):
            Bearer token presented on every request.
            Randomly generated, unique and not null.

        expires_in (Integer):
            Validity of the token in seconds.

        expires_at (DateTime):
            Absolute expiry timestamp of the token.

        updated_on (DateTime):
            Timestamp automatically updated whenever the token is modified.

        created_on (DateTime):
            Timestamp indicating when the token was created.
    """

    __tablename__ = "user_token"

    id = Column(Integer, primary_key=True)
    email = Column(String(64), nullable=False, index=True)
    role = Column(Integer, nullable=False, default=Role.DISPATCHER)
    access_token = Column(
        String(64), unique=True, nullable=False, default=lambda: token_hex(32)
    )
    expires_in = Column(Integer, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Party DB Models -----------------------------------------#
class Seller(ORMbase):
    """
    Represents a seller (shop) receiving the transported goods.

    The seller's address is copied into a bilty's delivery address when the
    bilty is created without one; later changes to the seller are not
    propagated to existing bilties.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the seller.

        name (String(128)):
            Name of the seller. Not null.

        mobile_number (String(16)):
            Normalized 10-digit mobile number, may be empty.

        address (TEXT):
            Postal address of the seller.

        shop_name (String(128)):
            Name of the seller's shop, used by billing searches.

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the seller was created.
    """

    __tablename__ = "seller"

    id = Column(Integer, primary_key=True)
    name = Column(String(128), nullable=False)
    mobile_number = Column(String(16), nullable=False, default="")
    address = Column(TEXT, nullable=False, default="")
    shop_name = Column(String(128), nullable=False, default="")
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Supplier(ORMbase):
    """
    Represents a supplier (farm or plant) of the transported produce.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the supplier.

        name (String(128)):
            Name of the supplier. Not null.

        contact_number (String(16)):
            Normalized 10-digit contact number, may be empty.

        address (TEXT):
            Postal address of the supplier.

        product_category (String(64)):
            Category of the supplied product. Defaults to `Tomato`.

        plant_name (String(128)):
            Name of the plant or farm, compared against bilty products
            for the dashboard dispatch percentage.

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the supplier was created.
    """

    __tablename__ = "supplier"

    id = Column(Integer, primary_key=True)
    name = Column(String(128), nullable=False)
    contact_number = Column(String(16), nullable=False, default="")
    address = Column(TEXT, nullable=False, default="")
    product_category = Column(String(64), nullable=False, default="Tomato")
    plant_name = Column(String(128), nullable=False, default="")
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Transport DB Models -------------------------------------#
class Vehicle(ORMbase):
    """
    Represents a vehicle carrying bilties, together with its current driver
    and transport company.

    A vehicle is upserted by its normalized registration number whenever a
    bilty is created or updated, so the registration number is unique.
    Bilties reference the vehicle by `id`, the registration number remains
    an editable attribute.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the vehicle.

        transport_name (String(128)):
            Name of the transport company. Not null.

        driver_name (String(128)):
            Name of the current driver. Not null.

        vehicle_no (String(16)):
            Normalized registration number (uppercase, no separators).
            Must be unique and not null.

        driver_mobile (String(16)):
            Normalized mobile number of the driver.

        transport_mobile (String(16)):
            Normalized mobile number of the transport company, may be empty.

        date_time (DateTime):
            Timestamp of the last dispatch of this vehicle.

        product_info (TEXT):
            Free-text description of the load.

        quantity (Float):
            Raw quantity of the last load.

        advance (Float):
            Advance paid for the last load.

        status (Integer):
            Vehicle status, stored as an integer enum (`VehicleStatus`).

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the vehicle was created.
    """

    __tablename__ = "vehicle"

    id = Column(Integer, primary_key=True)
    transport_name = Column(String(128), nullable=False)
    driver_name = Column(String(128), nullable=False)
    vehicle_no = Column(String(16), nullable=False, unique=True)
    driver_mobile = Column(String(16), nullable=False, default="")
    transport_mobile = Column(String(16), nullable=False, default="")
    date_time = Column(DateTime(timezone=True), default=func.now())
    product_info = Column(TEXT, nullable=False, default="")
    quantity = Column(Float, nullable=False, default=0)
    advance = Column(Float, nullable=False, default=0)
    status = Column(Integer, nullable=False, default=VehicleStatus.ACTIVE)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Bilty(ORMbase):
    """
    Represents a bilty (delivery note) for one consignment of produce.

    The aggregate `total_crates_bags` always equals the sum of the
    `total_crates_bags` of the bilty's product details.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the bilty.

        bilty_number (String(32)):
            Human readable bilty number (`BLT...`).
            Must be unique and not null.

        seller_id (Integer):
            Foreign key to `seller.id`. Set to NULL when the seller is deleted.

        vehicle_id (Integer):
            Foreign key to `vehicle.id`. Set to NULL when the vehicle is deleted.

        delivery_address (TEXT):
            Delivery address, defaults to the seller's address on creation.

        rent (Float):
            Total rent (freight charge) of the consignment.

        advance (Float):
            Amount paid in advance against the rent.

        driver_tips (Float):
            Tips paid to the driver.

        total_crates_bags (Float):
            Sum of the crate/bag counts of all product details.

        status (Integer):
            Bilty status, stored as an integer enum (`BiltyStatus`).

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the bilty was created.
    """

    __tablename__ = "bilty"

    id = Column(Integer, primary_key=True)
    bilty_number = Column(String(32), nullable=False, unique=True)
    seller_id = Column(
        Integer, ForeignKey("seller.id", ondelete="SET NULL"), index=True
    )
    vehicle_id = Column(
        Integer, ForeignKey("vehicle.id", ondelete="SET NULL"), index=True
    )
    delivery_address = Column(TEXT, nullable=False, default="")
    rent = Column(Float, nullable=False, default=0)
    advance = Column(Float, nullable=False, default=0)
    driver_tips = Column(Float, nullable=False, default=0)
    total_crates_bags = Column(Float, nullable=False, default=0)
    status = Column(Integer, nullable=False, default=BiltyStatus.PENDING)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class ProductDetail(ORMbase):
    """
    Represents one product line of a bilty.

    Lines are never edited in place, a bilty update replaces all of them.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the product line.

        bilty_id (Integer):
            Foreign key to `bilty.id`. Lines are deleted with their bilty.

        product_name (String(128)):
            Name of the product. Not null.

        unit_type (String(16)):
            Unit of the quantity (kg, bag, crate, carrate, tons, quintal).

        quantity (Float):
            Quantity in `unit_type` units.

        total_crates_bags (Float):
            Quantity converted to crates/bags, rounded to 2 places.

        remarks (TEXT):
            Optional remarks for the line.

        created_on (DateTime):
            Timestamp indicating when the line was created.
    """

    __tablename__ = "product_detail"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    bilty_id = Column(
        Integer,
        ForeignKey("bilty.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_name = Column(String(128), nullable=False)
    unit_type = Column(String(16), nullable=False)
    quantity = Column(Float, nullable=False)
    total_crates_bags = Column(Float, nullable=False)
    remarks = Column(TEXT)
    # Metadata
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Schedule(ORMbase):
    """
    Represents a driver's shift schedule and the resulting payment.

    `final_payment` is computed on creation as
    `max(0, operating_days * SCHEDULE_DAILY_RATE - tax_deduction)`
    and is not recomputed on update.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the schedule.

        shift (Integer):
            Shift of the schedule, stored as an integer enum (`Shift`).

        in_time (Time):
            Start time of the shift.

        out_time (Time):
            End time of the shift.

        driver_id (String(64)):
            Free-text driver identifier. Not null.

        operating_days (Integer):
            Number of operating days (0 to 31).

        tax_deduction (Float):
            Tax deducted from the payment.

        final_payment (Float):
            Payment due to the driver.

        date (Date):
            Date of the schedule.

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the schedule was created.
    """

    __tablename__ = "schedule"

    id = Column(Integer, primary_key=True)
    shift = Column(Integer, nullable=False, default=Shift.MORNING)
    in_time = Column(Time, nullable=False)
    out_time = Column(Time, nullable=False)
    driver_id = Column(String(64), nullable=False)
    operating_days = Column(Integer, nullable=False, default=0)
    tax_deduction = Column(Float, nullable=False, default=0)
    final_payment = Column(Float, nullable=False, default=0)
    date = Column(Date, nullable=False)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Billing DB Models ---------------------------------------#
class BillingRecord(ORMbase):
    """
    Represents a simple billing record of one vehicle trip.

    `net_amount` is computed on creation as `max(0, amount - advance)`;
    only the status can be changed afterwards.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the record.

        vehicle_no (String(16)):
            Normalized registration number of the vehicle.

        date (Date):
            Billing date.

        amount (Float):
            Gross amount billed.

        seller_id (Integer):
            Foreign key to `seller.id`. Set to NULL when the seller is deleted.

        advance (Float):
            Advance already received.

        net_amount (Float):
            Amount still due.

        status (Integer):
            Billing status, stored as an integer enum (`BillingStatus`).

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the record was created.
    """

    __tablename__ = "billing_record"

    id = Column(Integer, primary_key=True)
    vehicle_no = Column(String(16), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Float, nullable=False, default=0)
    seller_id = Column(
        Integer, ForeignKey("seller.id", ondelete="SET NULL"), index=True
    )
    advance = Column(Float, nullable=False, default=0)
    net_amount = Column(Float, nullable=False, default=0)
    status = Column(Integer, nullable=False, default=BillingStatus.PENDING)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Billing(ORMbase):
    """
    Represents the detailed billing of a bilty, priced per product line.

    Invariant: `net_total = sum(line.total_amount) - commission - driver_paid`.
    The net total may be negative. Billings are create-only.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the billing.

        bilty_id (Integer):
            Foreign key to `bilty.id`. Billings are deleted with their bilty.

        commission (Float):
            Commission deducted from the gross total.

        driver_paid (Float):
            Remaining driver balance paid out of the gross total.

        net_total (Float):
            Net amount of the billing.

        billing_date (Date):
            Date of the billing.

        remark (TEXT):
            Optional remark.

        created_on (DateTime):
            Timestamp indicating when the billing was created.
    """

    __tablename__ = "billing"

    id = Column(Integer, primary_key=True)
    bilty_id = Column(
        Integer,
        ForeignKey("bilty.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    commission = Column(Float, nullable=False, default=0)
    driver_paid = Column(Float, nullable=False, default=0)
    net_total = Column(Float, nullable=False, default=0)
    billing_date = Column(Date, nullable=False)
    remark = Column(TEXT)
    # Metadata
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class BillingLine(ORMbase):
    """
    Represents the sold price of one product line within a billing.

    Invariant: `total_amount = sold_price * product_detail.total_crates_bags`.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the billing line.

        billing_id (Integer):
            Foreign key to `billing.id`. Deleted with the billing.

        product_detail_id (Integer):
            Foreign key to `product_detail.id`. Deleted with the product line.

        sold_price (Float):
            Sold price per crate/bag.

        total_amount (Float):
            Amount of the line.

        created_on (DateTime):
            Timestamp indicating when the line was created.
    """

    __tablename__ = "billing_line"

    id = Column(Integer, primary_key=True)
    billing_id = Column(
        Integer,
        ForeignKey("billing.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_detail_id = Column(
        Integer,
        ForeignKey("product_detail.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sold_price = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)
    # Metadata
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())

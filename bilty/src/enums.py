from enum import IntEnum


class OrderIn(IntEnum):
    ASC = 1
    DESC = 2


class Role(IntEnum):
    ADMIN = 1
    DISPATCHER = 2
    ENTRY_OPERATOR = 3
    ACCOUNTANT = 4


class Capability(IntEnum):
    DASHBOARD = 1
    BILTY = 2
    SELLER = 3
    SUPPLIER = 4
    VEHICLE = 5
    SCHEDULE = 6
    BILLING = 7
    REPORTS = 8


class BiltyStatus(IntEnum):
    PENDING = 1
    IN_TRANSIT = 2
    DELIVERED = 3


class VehicleStatus(IntEnum):
    ACTIVE = 1
    IDLE = 2
    MAINTENANCE = 3


class Shift(IntEnum):
    MORNING = 1
    EVENING = 2


class BillingStatus(IntEnum):
    PAID = 1
    PENDING = 2
    OVERDUE = 3

# Account
URL_ACCOUNT = "/account"
URL_ACCOUNT_TOKEN = "/account/token"

# Parties
URL_SELLER = "/seller"
URL_SUPPLIER = "/supplier"

# Transport
URL_VEHICLE = "/vehicle"
URL_BILTY = "/bilty"
URL_BILTY_STATUS = "/bilty/status"
URL_SCHEDULE = "/schedule"

# Billing
URL_BILLING = "/bilty/billing"
URL_BILLING_PREVIEW = "/bilty/billing/preview"
URL_BILLING_RECORD = "/billing"
URL_BILLING_RECORD_STATUS = "/billing/status"
URL_BILLING_RECORD_SUMMARY = "/billing/summary"
URL_BILLING_RECORD_CSV = "/billing/csv"

# Dashboard
URL_DASHBOARD = "/dashboard"

import os

ERP_API_BASE_URL = os.getenv("ERP_API_BASE_URL", "http://localhost:3000")
ERP_API_TIMEOUT = float(os.getenv("ERP_API_TIMEOUT", "5"))

# SPK generation is the only ERP call that retries
SPK_MAX_RETRIES = int(os.getenv("SPK_MAX_RETRIES", "2"))
SPK_RETRY_DELAY = float(os.getenv("SPK_RETRY_DELAY", "2.0"))

DEFAULT_TAX_PERCENTAGE = os.getenv("DEFAULT_TAX_PERCENTAGE", "11")

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:80").split(",")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# customer row that stands for fabric held in the shop's own stock
HOUSE_FABRIC_CUSTOMER_ID = os.getenv("HOUSE_FABRIC_CUSTOMER_ID", "22")

# drafts untouched for this long are dropped from memory
DRAFT_MAX_AGE = float(os.getenv("DRAFT_MAX_AGE", str(24 * 60 * 60)))

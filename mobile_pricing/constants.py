from decimal import Decimal

INSTALLMENT_MONTHS = (0, 12, 24, 36)

PUBLIC_SUBSIDY = "public-subsidy"
SELECTIVE_CONTRACT = "selective-contract"

CONTRACT_TYPE_LABELS = {
    PUBLIC_SUBSIDY: "공시지원",
    SELECTIVE_CONTRACT: "선택약정",
}

JOIN_TYPE_LABELS = {
    "change": "기기변경",
    "transfer": "번호이동",
    "new": "신규가입",
}

DEFAULT_INSTALLMENT_INTEREST_RATE = Decimal("0.059")
DEFAULT_SELECTIVE_DISCOUNT_RATE = Decimal("0.25")
DEFAULT_VAT_RATE = Decimal("0.1")
DEFAULT_BUNDLE_DISCOUNT_RATE = Decimal("0.10")

# annual; keeps the annuity growth factor inside decimal range
MAX_INSTALLMENT_INTEREST_RATE = Decimal("1")

# lump-sum comparisons are spread over the usual contract length
COMPARISON_HORIZON_MONTHS = 24

MAX_BATCH_SIZE = 100
MAX_REQUEST_BODY_BYTES = 1_048_576

from enum import Enum


class PaymentType(str, Enum):
    principal = "principal"
    interest = "interest"


class InterestKind(str, Enum):
    rate = "rate"
    flat = "flat"


class SeedMode(str, Enum):
    bootstrap = "bootstrap"
    upsert = "upsert"

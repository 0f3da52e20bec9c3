from enum import StrEnum


class DataSource(StrEnum):
    VENDOR_5Y = "vendor-5y"
    VENDOR_BETA = "vendor-beta"
    CALCULATED = "calculated"
    DEFAULT = "default"

    @property
    def is_estimated(self) -> bool:
        return self in (DataSource.CALCULATED, DataSource.DEFAULT)


class Interval(StrEnum):
    DAILY = "1d"
    MONTHLY = "1mo"

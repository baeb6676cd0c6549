from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def minutes_of_day(value: time | datetime) -> int:
    return value.hour * 60 + value.minute


def month_bounds(month: str) -> tuple[date, date]:
    """'2025-03' -> (date(2025, 3, 1), date(2025, 4, 1)), end exclusive."""
    year, mon = (int(part) for part in month.split("-"))
    start = date(year, mon, 1)
    if mon == 12:
        end = date(year + 1, 1, 1)
    else:
        end = date(year, mon + 1, 1)
    return start, end


def shift_month(month: str, delta: int) -> str:
    year, mon = (int(part) for part in month.split("-"))
    index = year * 12 + (mon - 1) + delta
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def current_month() -> str:
    now = utcnow()
    return f"{now.year:04d}-{now.month:02d}"

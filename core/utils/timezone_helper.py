"""Утилиты для работы с временными зонами и расчетными периодами."""

from datetime import datetime, date, time as dt_time, timedelta, tzinfo
import calendar
from typing import Optional, Tuple, Union
import pytz
from core.config.settings import settings
from core.logging.logger import logger

TimezoneLike = Union[str, tzinfo, None]


class TimezoneHelper:
    """Помощник для работы с временными зонами."""

    def __init__(self, default_timezone: str = None):
        """
        Инициализация помощника временных зон.

        Args:
            default_timezone: Временная зона по умолчанию
        """
        self.default_timezone_str = default_timezone or settings.default_timezone
        try:
            self.default_timezone = pytz.timezone(self.default_timezone_str)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown timezone {self.default_timezone_str}, using UTC")
            self.default_timezone = pytz.UTC

    def resolve(self, tz: TimezoneLike = None) -> tzinfo:
        """Возвращает объект временной зоны (по умолчанию из настроек)."""
        if tz is None:
            return self.default_timezone
        if isinstance(tz, str):
            try:
                return pytz.timezone(tz)
            except pytz.UnknownTimeZoneError:
                logger.warning(f"Unknown timezone {tz}, using default")
                return self.default_timezone
        return tz

    def localize(self, naive: datetime, tz: TimezoneLike = None) -> datetime:
        """Привязывает наивное время к временной зоне."""
        zone = self.resolve(tz)
        if hasattr(zone, "localize"):
            return zone.localize(naive)
        return naive.replace(tzinfo=zone)

    def to_local(self, moment: datetime, tz: TimezoneLike = None) -> datetime:
        """
        Конвертирует время в локальную зону.

        Наивное время считается UTC.
        """
        if moment.tzinfo is None:
            moment = pytz.UTC.localize(moment)
        return moment.astimezone(self.resolve(tz))

    def start_of_day(self, local_date: date, tz: TimezoneLike = None) -> datetime:
        """Начало дня (00:00:00) в локальной зоне."""
        return self.localize(datetime.combine(local_date, dt_time(0, 0, 0)), tz)

    def end_of_day(self, local_date: date, tz: TimezoneLike = None) -> datetime:
        """Конец дня (23:59:59.999999) в локальной зоне."""
        return self.localize(datetime.combine(local_date, dt_time(23, 59, 59, 999999)), tz)


timezone_helper = TimezoneHelper()
_EPOCH = datetime(1970, 1, 1, tzinfo=pytz.UTC)


def day_bounds(moment: datetime, tz: TimezoneLike = None) -> Tuple[datetime, datetime]:
    """Границы календарного дня, содержащего moment, в локальной зоне."""
    local_date = timezone_helper.to_local(moment, tz).date()
    return timezone_helper.start_of_day(local_date, tz), timezone_helper.end_of_day(local_date, tz)


def month_bounds(month: int, year: int, tz: TimezoneLike = None) -> Tuple[datetime, datetime]:
    """
    Границы календарного месяца.

    Returns:
        (первый момент 1-го числа, последний момент последнего дня)
    """
    last_day = calendar.monthrange(year, month)[1]
    start = timezone_helper.start_of_day(date(year, month, 1), tz)
    end = timezone_helper.end_of_day(date(year, month, last_day), tz)
    return start, end


def current_month(now: datetime, tz: TimezoneLike = None) -> Tuple[int, int]:
    """(месяц, год) момента now в локальной зоне."""
    local = timezone_helper.to_local(now, tz)
    return local.month, local.year


def previous_month(month: int, year: int) -> Tuple[int, int]:
    """Предыдущий месяц; январь переходит в декабрь прошлого года."""
    if month == 1:
        return 12, year - 1
    return month - 1, year


def in_range(moment: datetime, start: datetime, end: datetime) -> bool:
    """Проверка попадания в закрытый интервал [start, end]."""
    return start <= moment <= end


def from_timestamp_ms(value: int) -> datetime:
    """Epoch-миллисекунды (формат документов) -> aware datetime в UTC."""
    return _EPOCH + timedelta(milliseconds=int(value))


def to_timestamp_ms(moment: datetime) -> int:
    """Aware datetime -> epoch-миллисекунды."""
    if moment.tzinfo is None:
        moment = pytz.UTC.localize(moment)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def relative_time(moment: datetime, now: Optional[datetime] = None) -> str:
    """Человекочитаемое «сколько времени назад» (месяц = 30 дней, год = 365)."""
    now = now or datetime.now(pytz.UTC)
    if moment.tzinfo is None:
        moment = pytz.UTC.localize(moment)
    seconds = int((now - moment) / timedelta(seconds=1))
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    months = days // 30
    years = days // 365

    for value, unit in ((years, "year"), (months, "month"), (days, "day"), (hours, "hour"), (minutes, "minute")):
        if value > 0:
            return f"1 {unit} ago" if value == 1 else f"{value} {unit}s ago"
    return "just now"

"""French public holidays used when counting absence days."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from functools import lru_cache


@dataclass(frozen=True)
class Holiday:
    """Simple representation of a public holiday."""

    code: str
    date: date
    name: str
    localized_name: str


def _calculate_easter_sunday(year: int) -> date:
    """Return the Gregorian Easter Sunday for *year* using the Anonymous algorithm."""

    # Anonymous Gregorian algorithm (Meeus/Jones/Butcher)
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = 1 + (h + l - 7 * m + 114) % 31
    return date(year, month, day)


def get_french_public_holidays(year: int) -> list[Holiday]:
    """Return the eleven national public holidays observed in France for *year*."""

    easter = _calculate_easter_sunday(year)

    return [
        Holiday("new_years_day", date(year, 1, 1), "New Year's Day", "Jour de l'an"),
        Holiday("easter_monday", easter + timedelta(days=1), "Easter Monday", "Lundi de Pâques"),
        Holiday("labour_day", date(year, 5, 1), "Labour Day", "Fête du Travail"),
        Holiday("victory_day", date(year, 5, 8), "Victory in Europe Day", "Victoire 1945"),
        Holiday("ascension_day", easter + timedelta(days=39), "Ascension Day", "Ascension"),
        Holiday("whit_monday", easter + timedelta(days=50), "Whit Monday", "Lundi de Pentecôte"),
        Holiday("bastille_day", date(year, 7, 14), "Bastille Day", "Fête nationale"),
        Holiday("assumption_day", date(year, 8, 15), "Assumption Day", "Assomption"),
        Holiday("all_saints_day", date(year, 11, 1), "All Saints' Day", "Toussaint"),
        Holiday("armistice_day", date(year, 11, 11), "Armistice Day", "Armistice 1918"),
        Holiday("christmas_day", date(year, 12, 25), "Christmas Day", "Noël"),
    ]


@lru_cache(maxsize=32)
def holiday_dates(year: int) -> frozenset[date]:
    return frozenset(holiday.date for holiday in get_french_public_holidays(year))


__all__ = ["Holiday", "get_french_public_holidays", "holiday_dates"]

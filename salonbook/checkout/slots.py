"""
Sélection de créneaux: dates candidates, horaires, et règles de sélection.
- Une date dans la fenêtre de réservation à l'avance (aujourd'hui inclus).
- 1 à MAX_SELECTED_TIMES horaires distincts, dans l'ordre de sélection.
"""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from salonbook.config import (
    MAX_SELECTED_TIMES,
    SLOT_START_TIME,
    SLOT_END_TIME,
    SLOT_INTERVAL_MINUTES,
)
from salonbook.errors import PreconditionError, ValidationError

_DAY_ABBR = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTH_ABBR = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")


class CandidateDate(BaseModel):
    value: str
    day: str
    date: int
    month: str
    label: str


class SlotSelection(BaseModel):
    date: Optional[str] = None
    times: List[str] = Field(default_factory=list)

    def combined_label(self) -> str:
        return ", ".join(self.times)


class ToggleResult(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    LIMIT_REACHED = "limit_reached"


def _parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Objet date/datetime, ou chaîne YYYY-MM-DD complète (rien avant ni après)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Date invalide: {value}")


def _parse_clock(value: str) -> int:
    try:
        hours, minutes = str(value).strip().split(":")
        total = int(hours) * 60 + int(minutes)
    except ValueError:
        raise ValidationError(f"Heure invalide: {value}")
    if not 0 <= total < 24 * 60:
        raise ValidationError(f"Heure invalide: {value}")
    return total


def format_time_label(minutes_since_midnight: int) -> str:
    hour, minute = divmod(minutes_since_midnight, 60)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def generate_dates(window_days: int, today: Optional[date] = None) -> List[CandidateDate]:
    """
    Génère exactement window_days dates consécutives à partir d'aujourd'hui.
    - value: ISO (tri machine), day/date/month/label: affichage.
    """
    if window_days is None or int(window_days) < 1:
        raise ValidationError("La fenêtre de réservation doit contenir au moins un jour")
    start = today or date.today()
    dates: List[CandidateDate] = []
    for offset in range(int(window_days)):
        d = start + timedelta(days=offset)
        day = _DAY_ABBR[d.weekday()]
        month = _MONTH_ABBR[d.month - 1]
        dates.append(CandidateDate(
            value=d.isoformat(),
            day=day,
            date=d.day,
            month=month,
            label=f"{day} {d.day} {month}",
        ))
    return dates


def generate_time_slots(
    start_time: str = SLOT_START_TIME,
    end_time: str = SLOT_END_TIME,
    interval_minutes: int = SLOT_INTERVAL_MINUTES,
) -> List[str]:
    """Horaires au format 12h (« 2:30 PM »), de start_time à end_time inclus."""
    if interval_minutes is None or int(interval_minutes) <= 0:
        raise ValidationError("L'intervalle entre créneaux doit être positif")
    start = _parse_clock(start_time)
    end = _parse_clock(end_time)
    if end < start:
        raise ValidationError("L'heure de fin précède l'heure de début")
    return [format_time_label(m) for m in range(start, end + 1, int(interval_minutes))]


def toggle_time(
    selected: Sequence[str],
    candidate: str,
    max_times: int = MAX_SELECTED_TIMES,
) -> Tuple[List[str], ToggleResult]:
    """
    Bascule un horaire dans la sélection (ordre d'insertion conservé).
    - déjà présent: retiré
    - nouveau: ajouté si moins de max_times, sinon sélection inchangée + LIMIT_REACHED
    """
    current = list(selected)
    if candidate in current:
        current.remove(candidate)
        return current, ToggleResult.REMOVED
    if len(current) >= max_times:
        return current, ToggleResult.LIMIT_REACHED
    current.append(candidate)
    return current, ToggleResult.ADDED


def _window_bounds(window_days: int, today: Optional[date]) -> Tuple[date, date]:
    start = today or date.today()
    return start, start + timedelta(days=int(window_days))


def validate_selection(
    selection: SlotSelection,
    window_days: int,
    time_slots: Optional[Sequence[str]] = None,
    today: Optional[date] = None,
    max_times: int = MAX_SELECTED_TIMES,
) -> SlotSelection:
    """
    Vérifie une sélection complète avant paiement; lève ValidationError sinon.
    Retourne une sélection normalisée (date ISO).
    """
    chosen = _parse_date(selection.date)
    if chosen is None:
        raise ValidationError("Veuillez choisir une date pour votre rendez-vous")
    if not selection.times:
        raise ValidationError("Veuillez choisir au moins un créneau horaire")
    first, last_excluded = _window_bounds(window_days, today)
    if not first <= chosen < last_excluded:
        raise ValidationError(f"La date doit être comprise dans les {window_days} prochains jours")
    if len(set(selection.times)) != len(selection.times):
        raise ValidationError("Créneaux horaires en double")
    if len(selection.times) > max_times:
        raise ValidationError(f"Vous pouvez choisir au maximum {max_times} créneaux")
    allowed = list(time_slots) if time_slots is not None else generate_time_slots()
    unknown = [t for t in selection.times if t not in allowed]
    if unknown:
        raise ValidationError(f"Créneau inconnu: {unknown[0]}")
    return SlotSelection(date=chosen.isoformat(), times=list(selection.times))


class SlotSelector:
    """État de sélection d'un client (date + horaires), avec les mêmes règles que validate_selection."""

    def __init__(
        self,
        window_days: int,
        time_slots: Optional[Sequence[str]] = None,
        today: Optional[date] = None,
        max_times: int = MAX_SELECTED_TIMES,
    ):
        self.window_days = int(window_days)
        self.today = today or date.today()
        self.time_slots = list(time_slots) if time_slots is not None else generate_time_slots()
        self.max_times = max_times
        self.dates = generate_dates(self.window_days, today=self.today)
        self._date: Optional[date] = None
        self._times: List[str] = []

    def select_date(self, value: Union[str, date]) -> str:
        chosen = _parse_date(value)
        if chosen is None:
            raise ValidationError("Veuillez choisir une date pour votre rendez-vous")
        first, last_excluded = _window_bounds(self.window_days, self.today)
        if not first <= chosen < last_excluded:
            raise ValidationError(f"La date doit être comprise dans les {self.window_days} prochains jours")
        self._date = chosen
        return chosen.isoformat()

    def toggle_time(self, label: str) -> ToggleResult:
        if self._date is None:
            raise PreconditionError()
        if label not in self.time_slots:
            raise ValidationError(f"Créneau inconnu: {label}")
        self._times, result = toggle_time(self._times, label, self.max_times)
        return result

    @property
    def selected_times(self) -> List[str]:
        return list(self._times)

    def selection(self) -> SlotSelection:
        return SlotSelection(date=self._date.isoformat() if self._date else None, times=list(self._times))

    def reset(self) -> None:
        self._date = None
        self._times = []

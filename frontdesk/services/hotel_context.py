"""The hotel the operator is currently working on."""

import json
from datetime import datetime
from pathlib import Path
from typing import Protocol

import httpx

from frontdesk.models.hotel import Hotel
from frontdesk.services.hotel_api import HotelApiError
from frontdesk.utils.logger import bind_hotel, get_logger

logger = get_logger(__name__)


class HotelLookup(Protocol):
    async def get_hotel(self, hotel_id: str) -> Hotel | None:
        ...


class HotelContext:
    """
    Current-hotel selection that survives restarts.

    The selection lives in a small JSON state file. Nothing is read until
    load() is called, and nothing is written except by select() and clear().

    Usage:
        context = HotelContext(settings.hotel_state_file)
        context.load()
        async with HotelApiClient(...) as client:
            await context.refresh(client)
    """

    def __init__(self, state_file: str | Path):
        self.state_file = Path(state_file)
        self.hotel_id: str | None = None
        self.hotel: Hotel | None = None
        self.error: str | None = None

    def load(self) -> str | None:
        """
        Read the stored selection.

        Returns:
            Stored hotel id, or None when nothing usable is stored
        """
        self.hotel_id = None
        self.hotel = None

        if not self.state_file.exists():
            self.error = "No hotel selected"
            return None

        try:
            data = json.loads(self.state_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("hotel_context_unreadable", path=str(self.state_file), error=str(e))
            self.error = "No hotel selected"
            return None

        hotel_id = data.get("hotel_id") if isinstance(data, dict) else None
        if not hotel_id:
            self.error = "No hotel selected"
            return None

        self.hotel_id = str(hotel_id)
        self.error = None
        bind_hotel(self.hotel_id)
        logger.debug("hotel_context_loaded", hotel_id=self.hotel_id)
        return self.hotel_id

    def select(self, hotel: Hotel | str) -> None:
        """Make a hotel current and persist the choice."""
        if isinstance(hotel, Hotel):
            self.hotel_id, self.hotel = hotel.id, hotel
        else:
            self.hotel_id, self.hotel = str(hotel), None
        self.error = None

        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        self.state_file.write_text(
            json.dumps({
                "hotel_id": self.hotel_id,
                "hotel_name": self.hotel.name if self.hotel else None,
                "selected_at": datetime.now().isoformat(),
            }),
            encoding="utf-8",
        )
        bind_hotel(self.hotel_id)
        logger.info("hotel_context_selected", hotel_id=self.hotel_id)

    def clear(self) -> None:
        """Forget the selection."""
        self.hotel_id = None
        self.hotel = None
        self.error = "No hotel selected"
        self.state_file.unlink(missing_ok=True)
        bind_hotel(None)
        logger.info("hotel_context_cleared")

    async def refresh(self, client: HotelLookup) -> Hotel | None:
        """Fetch the full hotel record for the current selection."""
        if not self.hotel_id:
            self.hotel = None
            self.error = "No hotel selected"
            return None

        try:
            hotel = await client.get_hotel(self.hotel_id)
        except (HotelApiError, httpx.HTTPError) as e:
            logger.error("hotel_context_refresh_failed", hotel_id=self.hotel_id, error=str(e))
            self.hotel = None
            self.error = getattr(e, "message", None) or "Failed to fetch hotel"
            return None

        if hotel is None:
            self.hotel = None
            self.error = "Hotel not found"
            return None

        self.hotel = hotel
        self.error = None
        return hotel

"""System instructions sent to the vision classifier, one per call site."""

from __future__ import annotations

from typing import Final

BETTING_STATUS: Final[str] = """You are analyzing a betting interface screenshot to extract betting status and timer information.

TASK: Examine the image carefully and return a JSON object with the format {startBetting: boolean, timer: number}.

SIMPLE RULES:

IF "Start Betting" text is visible anywhere in the interface:
- Set startBetting to TRUE
- Find and return the actual timer value (number of seconds shown)

IF "Start Betting" text is NOT visible:
- Set startBetting to FALSE
- Set timer to 0

FOCUS ON: Look for "Start Betting" text first, then extract the timer number if betting text exists.

Return only the JSON object with no additional text."""

BETTING_STATUS_SHORT: Final[str] = (
    "Reply in this format: {startBetting: boolean, timer: number}. "
    "Only set startBetting to true if there is a very clear start betting text, "
    "and set timer to the number of seconds shown on the countdown."
)

CONNECTION_STATUS: Final[str] = (
    "Look at the image and determine if there is a disconnection shown. "
    "Return a JSON object with the format {needRefresh: boolean} where needRefresh is "
    "true if you see any indication of disconnection, and false if the connection "
    "appears normal."
)

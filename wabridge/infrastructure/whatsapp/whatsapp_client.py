"""
WhatsApp Client - Selenium-Based WhatsApp Web Automation
=========================================================
"""

import logging
import re
import shutil
import time
import random
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from selenium import webdriver
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.common.exceptions import (
    NoSuchElementException,
    WebDriverException,
    StaleElementReferenceException
)
from webdriver_manager.chrome import ChromeDriverManager

from ...domain.models import InboundMessage

logger = logging.getLogger(__name__)

_MESSAGE_ID_RE = re.compile(r"^(true|false)_([^_]+@[a-z.]+)_(.+)$")
_UNREAD_COUNT_RE = re.compile(r"(\d+)")


class WhatsAppClientError(Exception):
    """Base exception for WhatsApp client errors."""
    pass


class WhatsAppBlockedError(WhatsAppClientError):
    """Raised when WhatsApp shows blocking/warning indicators."""
    pass


def parse_message_id(data_id: str) -> Optional[Tuple[bool, str, str]]:
    """
    Split a WhatsApp Web message `data-id` into (from_me, jid, message_id).

    Ids look like ``false_905551112233@c.us_3EB0C4...``; anything else
    returns None.
    """
    match = _MESSAGE_ID_RE.match(data_id or "")
    if not match:
        return None
    from_me, jid, message_id = match.groups()
    return from_me == "true", jid, message_id


def address_to_phone(address: str) -> str:
    """``905551112233@c.us`` -> ``905551112233``."""
    return address.split("@", 1)[0]


class WhatsAppClient:
    """
    Selenium-based WhatsApp Web client.

    Not thread-safe: callers must serialise access to one instance.
    """

    SELECTORS = {
        "search_box": 'div[contenteditable="true"][data-tab="3"]',
        "message_input": 'div[contenteditable="true"][data-tab="10"]',
        "message_input_alt": 'footer div[contenteditable="true"]',

        # Login screen / logged-in markers
        "qr_container": 'div[data-ref]',
        "qr_canvas": 'div[data-ref] canvas',
        "chat_list": '#pane-side',

        # Chat list rows carrying an unread badge
        "chat_row": '#pane-side div[role="listitem"]',
        "unread_badge": 'span[aria-label*="unread"]',

        # Message rows - data-id encodes direction, chat jid and message id
        "message_row": 'div[data-id]',

        # Menu entries used by logout
        "menu_button": 'div[title="Menu"], span[data-icon="menu"]',
        "logout_item": 'div[aria-label="Log out"], li[data-testid="mi-logout menu-item"]',
        "confirm_button": 'div[role="dialog"] button',
    }

    BLOCK_INDICATORS = [
        "temporarily banned",
        "account is temporarily",
        "verify your phone",
        "unusual activity",
    ]

    def __init__(self, headless: bool = True, profile_dir: Path = Path("whatsapp_profile")):
        self._profile_dir = Path(profile_dir).resolve()
        self.driver = self._create_driver(headless)
        self._navigate_to_whatsapp()

    def _create_driver(self, headless: bool) -> webdriver.Chrome:
        """Create and configure Chrome WebDriver."""
        options = webdriver.ChromeOptions()

        if headless:
            options.add_argument("--headless=new")
        else:
            options.add_argument("--start-maximized")

        options.add_argument("--disable-gpu")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-setuid-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--no-first-run")

        # The profile keeps the WhatsApp session between restarts
        options.add_argument(f"--user-data-dir={self._profile_dir}")
        logger.info(f"Using Chrome profile at: {self._profile_dir}")

        service = ChromeService(ChromeDriverManager().install())
        return webdriver.Chrome(service=service, options=options)

    def _navigate_to_whatsapp(self) -> None:
        """Navigate to WhatsApp Web."""
        self.driver.get("https://web.whatsapp.com/")
        logger.info("Opened WhatsApp Web")

    def _random_delay(self, min_s: float = 0.5, max_s: float = 2.0) -> None:
        """Add human-like random delay."""
        delay = random.uniform(min_s, max_s)
        time.sleep(delay)

    def _check_for_blocks(self) -> bool:
        """Check page for blocking/warning indicators."""
        try:
            page_text = self.driver.page_source.lower()
        except WebDriverException:
            return False
        for indicator in self.BLOCK_INDICATORS:
            if indicator in page_text:
                logger.error(f"Block indicator detected: {indicator}")
                return True
        return False

    # ── Session state ──────────────────────────────────────────────

    def is_logged_in(self) -> bool:
        """True once the chat list is on screen."""
        return bool(self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["chat_list"]))

    def read_qr(self) -> Optional[Dict[str, str]]:
        """
        Read the login QR challenge, if one is displayed.

        Returns {"ref": <QR payload>, "image": <PNG data URL>} or None.
        """
        containers = self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["qr_container"])
        if not containers:
            return None

        try:
            ref = containers[0].get_attribute("data-ref") or ""
            if not ref:
                return None
            image = ""
            canvases = self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["qr_canvas"])
            if canvases:
                image = "data:image/png;base64," + canvases[0].screenshot_as_base64
            return {"ref": ref, "image": image}
        except StaleElementReferenceException:
            # QR is refreshed every ~20s; the next poll picks up the new one
            return None

    # ── Sending ────────────────────────────────────────────────────

    def open_chat(self, phone: str) -> bool:
        """Open chat with a phone number."""
        if self._check_for_blocks():
            raise WhatsAppBlockedError("WhatsApp blocking detected")

        try:
            logger.debug(f"Opening chat with: {phone}")

            search_box = self._find_search_box()
            if not search_box:
                return False

            search_box.click()
            self._random_delay(0.3, 0.7)
            search_box.send_keys(Keys.CONTROL + "a")
            search_box.send_keys(Keys.BACKSPACE)
            self._random_delay(0.3, 0.5)

            for char in phone:
                search_box.send_keys(char)
                self._random_delay(0.05, 0.15)

            time.sleep(2)
            search_box.send_keys(Keys.ENTER)
            time.sleep(2)

            # Verify chat opened
            if self._find_message_input():
                logger.debug(f"Chat opened: {phone}")
                return True
            else:
                logger.warning(f"Could not verify chat opened for: {phone}")
                return False

        except WebDriverException as e:
            logger.exception(f"Failed to open chat: {e}")
            return False

    def _find_search_box(self):
        """Find the search box element."""
        try:
            return self.driver.find_element(
                By.CSS_SELECTOR, self.SELECTORS["search_box"]
            )
        except NoSuchElementException:
            elements = self.driver.find_elements(
                By.CSS_SELECTOR, 'div[contenteditable="true"]'
            )
            return elements[0] if elements else None

    def _find_message_input(self):
        """Find the message input box with multiple fallback selectors."""
        selectors_to_try = [
            self.SELECTORS["message_input"],
            self.SELECTORS["message_input_alt"],
            'div[title="Type a message"]',
        ]

        for selector in selectors_to_try:
            try:
                return self.driver.find_element(By.CSS_SELECTOR, selector)
            except NoSuchElementException:
                continue

        return None

    def send_message(self, text: str) -> bool:
        """Send a message in the current chat."""
        try:
            input_box = self._find_message_input()
            if not input_box:
                logger.error("Could not find message input box")
                return False

            input_box.click()
            self._random_delay(0.2, 0.4)

            # Newlines would submit early; Shift+Enter keeps them in one message
            lines = text.split("\n")
            for i, line in enumerate(lines):
                chunk_size = 50
                for start in range(0, len(line), chunk_size):
                    input_box.send_keys(line[start:start + chunk_size])
                if i < len(lines) - 1:
                    input_box.send_keys(Keys.SHIFT + Keys.ENTER)

            self._random_delay(0.2, 0.4)
            input_box.send_keys(Keys.ENTER)

            logger.info(f"Sent message: {text[:50]}...")
            return True

        except WebDriverException as e:
            logger.exception(f"Failed to send message: {e}")
            return False

    def send_to(self, address: str, text: str) -> bool:
        """Open the chat for a WhatsApp address and send `text`."""
        if not self.open_chat(address_to_phone(address)):
            return False
        return self.send_message(text)

    # ── Receiving ──────────────────────────────────────────────────

    def _get_message_elements(self) -> List[Tuple[object, bool, str, str]]:
        """
        Message rows of the open chat, oldest first.
        Returns list of tuples: (element, is_incoming, jid, message_id)
        """
        messages = []
        for el in self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["message_row"]):
            try:
                parsed = parse_message_id(el.get_attribute("data-id"))
            except StaleElementReferenceException:
                continue
            if parsed is None:
                continue
            from_me, jid, message_id = parsed
            messages.append((el, not from_me, jid, message_id))
        return messages

    def _extract_text_from_message(self, element) -> Optional[str]:
        """Extract text content from a message element."""
        text_selectors = [
            'span.selectable-text.copyable-text > span',
            'span.selectable-text.copyable-text',
            'span.selectable-text',
            'span[dir="ltr"]',
        ]

        for selector in text_selectors:
            try:
                for text_el in element.find_elements(By.CSS_SELECTOR, selector):
                    text = text_el.text.strip()
                    if text:
                        return text
            except (NoSuchElementException, StaleElementReferenceException):
                continue

        return None

    def _unread_chats(self) -> List[Tuple[object, int]]:
        """Chat list rows with an unread badge, paired with the unread count."""
        rows = []
        for row in self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["chat_row"]):
            try:
                badges = row.find_elements(By.CSS_SELECTOR, self.SELECTORS["unread_badge"])
                if not badges:
                    continue
                label = badges[0].get_attribute("aria-label") or badges[0].text
                match = _UNREAD_COUNT_RE.search(label or "")
                rows.append((row, int(match.group(1)) if match else 1))
            except StaleElementReferenceException:
                continue
        return rows

    def read_unread_messages(self) -> List[InboundMessage]:
        """
        Open every chat with an unread badge and collect its newest
        incoming text messages (as many as the badge reports).
        """
        collected = []
        for row, count in self._unread_chats():
            try:
                row.click()
            except (StaleElementReferenceException, WebDriverException) as e:
                logger.debug(f"Could not open unread chat: {e}")
                continue
            self._random_delay(0.5, 1.0)

            incoming = [m for m in self._get_message_elements() if m[1]]
            for element, _, jid, message_id in incoming[-count:]:
                text = self._extract_text_from_message(element)
                if not text:
                    continue
                collected.append(InboundMessage(sender=jid, body=text, message_id=message_id))

        if collected:
            logger.debug(f"Read {len(collected)} unread messages")
        return collected

    def read_open_chat_messages(self) -> List[InboundMessage]:
        """
        Incoming text messages of the chat currently on screen that arrived
        after our last outgoing message.

        WhatsApp Web marks messages in the open chat as read at once, so they
        never get an unread badge.
        """
        rows = self._get_message_elements()
        last_outgoing = max((i for i, m in enumerate(rows) if not m[1]), default=-1)

        collected = []
        for element, _, jid, message_id in rows[last_outgoing + 1:]:
            text = self._extract_text_from_message(element)
            if text:
                collected.append(InboundMessage(sender=jid, body=text, message_id=message_id))
        return collected

    # ── Teardown ───────────────────────────────────────────────────

    def logout(self) -> None:
        """Log the linked device out through the WhatsApp Web menu."""
        try:
            self.driver.find_element(By.CSS_SELECTOR, self.SELECTORS["menu_button"]).click()
            self._random_delay(0.5, 1.0)
            self.driver.find_element(By.CSS_SELECTOR, self.SELECTORS["logout_item"]).click()
            self._random_delay(0.5, 1.0)
            buttons = self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["confirm_button"])
            if buttons:
                buttons[-1].click()
            logger.info("Logged out of WhatsApp Web")
        except WebDriverException as e:
            raise WhatsAppClientError(f"Logout failed: {e}") from e

    def clear_profile(self) -> None:
        """Remove the stored browser session so the next start asks for a QR."""
        shutil.rmtree(self._profile_dir, ignore_errors=True)
        logger.info(f"Removed Chrome profile at: {self._profile_dir}")

    def close(self) -> None:
        """Close browser and cleanup."""
        try:
            self.driver.quit()
            logger.info("Browser closed")
        except WebDriverException as e:
            logger.warning(f"Error closing browser: {e}")

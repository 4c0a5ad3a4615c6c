"""Shared fixtures: an in-memory ledger and a recording gateway."""

import asyncio
from typing import List, Tuple

import pytest
import pytest_asyncio

from blobs import FileBlobStore
from catalog import TradeCatalog
from gateway import MessagingGateway, InboundMessage, Identity, GroupRef, ContactRef, MessageKind
from ledger import MemoryLedger
from payments import PaymentCodeIssuer
from reports import Reports
from router import ConversationRouter

PICTURE_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"
CONTACT_CARD_BYTES = b"\xff\xd8\xff\xe0contact-card"


class FakeGateway(MessagingGateway):
    """Gateway that records everything sent through it."""

    def __init__(self):
        self.texts: List[Tuple[str, str]] = []
        self.images: List[Tuple[str, bytes]] = []
        self.groups: List[GroupRef] = []
        self.contacts: List[ContactRef] = []
        self.picture = PICTURE_BYTES
        self.fail_images = False

    async def send_text(self, target_id, text):
        self.texts.append((target_id, text))

    async def send_image(self, target_id, data):
        if self.fail_images:
            raise OSError("image upload failed")
        self.images.append((target_id, data))

    async def current_sender_identity(self, message):
        return Identity(user_id=message.sender_id, nickname=message.sender_nickname)

    async def list_groups(self):
        return list(self.groups)

    async def list_contacts(self):
        return list(self.contacts)

    async def fetch_picture(self, message):
        return self.picture

    def texts_to(self, target_id):
        return [text for target, text in self.texts if target == target_id]


def private_message(text="", sender="wxid_seller", nickname="老王", kind=MessageKind.TEXT):
    return InboundMessage(
        message_id="m-1",
        kind=kind,
        content=text,
        chat_id=sender,
        is_group=False,
        sender_id=sender,
        sender_nickname=nickname
    )


def group_message(text="", group="group-1", sender="wxid_buyer", nickname="小李", kind=MessageKind.TEXT):
    return InboundMessage(
        message_id="m-2",
        kind=kind,
        content=text,
        chat_id=group,
        is_group=True,
        sender_id=sender,
        sender_nickname=nickname
    )


@pytest.fixture
def ledger():
    """Fresh in-memory ledger."""
    return MemoryLedger()


class YieldingLedger(MemoryLedger):
    """In-memory ledger that yields to the event loop before each statement.

    Statements stay atomic, but concurrent callers interleave between them.
    """

    async def get_trade_item(self, item_id):
        await asyncio.sleep(0)
        return await super().get_trade_item(item_id)

    async def decrement_quantity(self, item_id, buyer):
        await asyncio.sleep(0)
        return await super().decrement_quantity(item_id, buyer)

    async def get_code(self, code):
        await asyncio.sleep(0)
        return await super().get_code(code)

    async def claim_code(self, code):
        await asyncio.sleep(0)
        return await super().claim_code(code)


@pytest.fixture
def yielding_ledger():
    return YieldingLedger()


@pytest.fixture
def blob_store(tmp_path):
    return FileBlobStore(tmp_path / "images")


@pytest.fixture
def catalog(ledger, blob_store):
    return TradeCatalog(ledger, blob_store)


@pytest.fixture
def issuer(ledger, catalog):
    return PaymentCodeIssuer(ledger, catalog)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def contact_card(tmp_path):
    path = tmp_path / "contact_card.jpg"
    path.write_bytes(CONTACT_CARD_BYTES)
    return path


@pytest_asyncio.fixture
async def conversation(gateway, catalog, issuer, ledger, contact_card):
    """Router wired to the fake gateway and in-memory ledger."""
    return ConversationRouter(
        gateway,
        catalog,
        issuer,
        Reports(ledger),
        contact_card_path=str(contact_card)
    )

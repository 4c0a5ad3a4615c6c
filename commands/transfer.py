"""Amount extraction from transfer notifications."""
import logging
import re
import xml.etree.ElementTree as ET
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)

AMOUNT_PATTERN = re.compile(r'[0-9]+(?:\.[0-9]+)?')

# paysubtype 3 marks the receiver-side confirmation of a transfer
IGNORED_PAY_SUBTYPE = 3


def extract_transfer_amount(payload: str) -> Decimal:
    """Extract the transferred amount from a payment envelope.

    Args:
        payload: XML body of the transfer message

    Returns:
        The amount, or Decimal 0 when the payload is unusable or ignored
    """
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as e:
        logger.warning(f"Failed to parse transfer payload: {e}")
        return Decimal(0)

    info = root.find('appmsg/wcpayinfo')
    if info is None:
        logger.warning("Transfer payload has no wcpayinfo element")
        return Decimal(0)

    subtype = (info.findtext('paysubtype') or '').strip()
    if subtype:
        try:
            if int(subtype) == IGNORED_PAY_SUBTYPE:
                return Decimal(0)
        except ValueError:
            logger.warning(f"Invalid paysubtype in transfer payload: {subtype}")
            return Decimal(0)

    match = AMOUNT_PATTERN.search(info.findtext('feedesc') or '')
    if not match:
        logger.warning("No amount found in transfer feedesc")
        return Decimal(0)

    try:
        return Decimal(match.group(0))
    except InvalidOperation as e:
        logger.warning(f"Failed to convert transfer amount {match.group(0)}: {e}")
        return Decimal(0)

# src/skinbag_settlement/models/__init__.py
"""SQLAlchemy models for the settlement engine."""

from .dispute import Dispute, DisputeEvent
from .escrow import EscrowEvent, EscrowHold
from .marketplace import Booking, Bounty, BountyApplication, Human, User
from .milestone import BookingMilestone
from .payout import CryptoPayout, PayoutEvent
from .policy import PaymentPolicy
from .wallet import HumanWallet, WalletVerificationChallenge
from .webhook import PayoutWebhookDelivery, PayoutWebhookSubscription

__all__ = [
    "User", "Human", "Booking", "Bounty", "BountyApplication",
    "PaymentPolicy",
    "HumanWallet", "WalletVerificationChallenge",
    "CryptoPayout", "PayoutEvent",
    "EscrowHold", "EscrowEvent",
    "Dispute", "DisputeEvent",
    "BookingMilestone",
    "PayoutWebhookSubscription", "PayoutWebhookDelivery",
]

"""
Prompts for the probabilistic classifier.
Every prompt asks for a single token from a closed set so the answer can be
validated before it is trusted.
"""
from typing import Optional

from core.schema import INCOME_TYPES, TransactionType

INTENT_BODY_LIMIT = 200
TYPE_BODY_LIMIT = 300


def build_intent_prompt(institution_name: str, subject: str, body_preview: str) -> str:
    """
    Build the transactional vs promotional prompt.

    Args:
        institution_name: Display name of the matched institution
        subject: Message subject
        body_preview: Start of the message body

    Returns:
        Prompt string
    """
    return f"""Classify this {institution_name} email. Is it about REAL money that already moved, or a PROMOTIONAL offer/bonus?

Subject: {subject}
Preview: {body_preview[:INTENT_BODY_LIMIT]}

IMPORTANT:
- "transaction" = money ALREADY moved (transfer completed, payment made)
- "promotional" = offers, bonuses to claim, incentives, marketing

Answer with ONLY one word: transaction OR promotional"""


def build_type_prompt(subject: str, body_preview: str) -> str:
    """
    Build the transaction type prompt.

    Args:
        subject: Message subject
        body_preview: Start of the message body

    Returns:
        Prompt string
    """
    context = f"Subject: {subject}\nBody: {body_preview[:TYPE_BODY_LIMIT]}"

    return f"""Analyze this bank or wallet notification email and determine the transaction type.

Transaction Types:
- transfer_received: Money received via transfer (keywords: recibiste, te transfirieron, te enviaron)
- transfer_sent: Money sent via transfer (keywords: transferiste, enviaste, transferencia enviada)
- payment_received: Payment received for a sale (keywords: te pagaron, vendiste)
- payment_sent: Payment made for purchase (keywords: pagaste, compraste, QR, suscripción)
- deposit: Money added to account (keywords: ingreso, cargaste, acreditamos, cashback, bonificación)
- withdrawal: Money withdrawn (keywords: retiro, extracción)
- refund_received: Refund received (keywords: te devolvieron, reembolso recibido)
- refund_sent: Refund sent (keywords: devolviste, reembolsaste)

Email:
{context}

Respond with ONLY the transaction type ID (e.g., "transfer_sent"), nothing else."""


def build_category_prompt(context: str, transaction_type: Optional[TransactionType]) -> str:
    """
    Build the spending/income category prompt.

    Args:
        context: Counterparty, description and subject joined together
        transaction_type: Extracted type, used to frame income vs expense

    Returns:
        Prompt string
    """
    kind = "income" if transaction_type in INCOME_TYPES else "expense"

    return f"""Categorize this {kind} transaction into exactly ONE category.

Categories:
- utilities-bills: electricity, gas, water, internet, phone, cable, rent
- food-dining: restaurants, cafes, supermarkets, delivery apps, food, groceries
- transportation: uber, taxi, fuel, parking, tolls, public transit, car expenses
- shopping-clothing: clothes, electronics, retail stores, online shopping, Amazon, MercadoLibre
- health-wellness: pharmacy, medical, gym, health insurance, doctor, hospital
- recreation-entertainment: netflix, spotify, games, cinema, streaming, hobbies, sports
- financial-obligations: taxes, loans, insurance premiums, bank fees, credit card
- savings-investments: investments, crypto, stocks, savings, interest income
- miscellaneous-other: personal transfers, gifts, anything that doesn't fit above

Transaction: "{context}"

Respond with ONLY the category ID (e.g., "food-dining"), nothing else."""

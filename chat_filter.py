"""
Chat safety filter.

Stops users from moving the conversation off-platform (phone numbers,
messaging apps, emails, social handles) and catches the usual fraud bait.
Pure functions, no state.
"""
import re
from dataclasses import dataclass

PHONE_PATTERNS = [
    re.compile(r"\+91\s*[6-9]\d{9}", re.A),
    re.compile(r"\b0?[6-9]\d{9}\b", re.A),
    re.compile(r"\b91[6-9]\d{9}\b", re.A),
    # ten digits with up to two separators between each: 98 76 54 32 10, 98-765-43210
    re.compile(r"\d(?:[\s\-.]{0,2}\d){9}", re.A),
]

KEYWORD_PATTERNS = [
    # messaging apps
    re.compile(r"\bwhatsapp\b", re.I),
    re.compile(r"\bwhatsap\b", re.I),
    re.compile(r"\bwa\.me\b", re.I),
    re.compile(r"\bwa\s*me\b", re.I),
    re.compile(r"\btelegram\b", re.I),
    re.compile(r"\bsignal\b", re.I),
    re.compile(r"\bwechat\b", re.I),
    # asking for contact details
    re.compile(r"\bcall\s*me\b", re.I),
    re.compile(r"\bcontact\s*me\b", re.I),
    re.compile(r"\bmy\s*number\b", re.I),
    re.compile(r"\bphone\s*number\b", re.I),
    re.compile(r"\bmobile\s*number\b", re.I),
    re.compile(r"\bgive\s*(me\s*)?(your|ur)\s*(no|num|number)", re.I),
    re.compile(r"\b(call|contact)\s*(on|at|thru|through)", re.I),
    # hinglish
    re.compile(r"\bcall\s*(kar|karo|karna|pls|plz)\b", re.I),
    re.compile(r"\bnumber\s*(do|dena|share)\b", re.I),
    # fraud bait
    re.compile(r"registration\s*fee", re.I),
    re.compile(r"deposit\s*required", re.I),
    re.compile(r"advance\s*payment", re.I),
    re.compile(r"bank\s*transfer", re.I),
    re.compile(r"(gpay|phonepay|paytm)\s*first", re.I),
    re.compile(r"send\s*money", re.I),
    # email
    re.compile(r"\b[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}\b", re.I),
    # social
    re.compile(r"\binstagram\b", re.I),
    re.compile(r"\bfacebook\b", re.I),
    re.compile(r"\blinkedin\b", re.I),
    re.compile(r"\btwitter\b", re.I),
    re.compile(r"\binsta\b", re.I),
]

FRAUD_PATTERN = re.compile(r"registration\s*fee|deposit\s*required|advance\s*payment|send\s*money", re.I)
OFF_PLATFORM_APP_PATTERN = re.compile(r"whatsapp|wa\.me|telegram|signal|wechat", re.I)
EMAIL_PATTERN = re.compile(r"\b[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}\b", re.I)

MASK_PHONE_PATTERNS = PHONE_PATTERNS[:3]

PHONE_REASON = "Phone numbers cannot be shared in chat. Use the in-app chat to communicate safely."
FRAUD_REASON = (
    "This message was blocked because it contains potential fraud keywords. "
    "If you need help, contact platform support."
)
SOCIAL_REASON = (
    "Please keep all conversations within the app for your safety. "
    "External contact sharing is not allowed."
)
EMAIL_REASON = "Email addresses cannot be shared in chat. Use the in-app chat to stay safe."
CONTACT_REASON = (
    "This message appears to share personal contact information. "
    "All communication must stay within the app."
)


@dataclass(frozen=True)
class FilterResult:
    blocked: bool
    reason: str | None = None
    category: str | None = None  # phone | contact | social | fraud

    def to_dict(self) -> dict:
        return {"blocked": self.blocked, "reason": self.reason, "category": self.category}


def filter_chat_message(message: str) -> FilterResult:
    """
    Classify one message. Phone numbers are checked first; on a keyword
    hit, fraud wins over off-platform apps, which win over email, which
    wins over generic contact requests.
    """
    text = message or ""

    for pattern in PHONE_PATTERNS:
        if pattern.search(text):
            return FilterResult(True, PHONE_REASON, "phone")

    for pattern in KEYWORD_PATTERNS:
        if pattern.search(text):
            if FRAUD_PATTERN.search(text):
                return FilterResult(True, FRAUD_REASON, "fraud")
            if OFF_PLATFORM_APP_PATTERN.search(text):
                return FilterResult(True, SOCIAL_REASON, "social")
            if EMAIL_PATTERN.search(text):
                return FilterResult(True, EMAIL_REASON, "contact")
            return FilterResult(True, CONTACT_REASON, "contact")

    return FilterResult(False)


def mask_sensitive_content(text: str) -> str:
    """Redact phone numbers and emails that slipped through."""
    masked = text
    for pattern in MASK_PHONE_PATTERNS:
        masked = pattern.sub("[phone hidden]", masked)
    return EMAIL_PATTERN.sub("[email hidden]", masked)

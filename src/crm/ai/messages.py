"""
Template-based campaign copy and delivery summaries.
"""

MESSAGE_TEMPLATES = (
    "{goal} - Special offer just for you! Get 20% off your next purchase with code SAVE20.",
    "{goal} - We miss you! Come back and enjoy exclusive benefits and personalized service.",
    "{goal} - Don't miss out on our latest collection. Limited time offer with free shipping!",
    "{goal} - Your feedback matters! Help us improve and get rewarded with special discounts.",
    "{goal} - Exclusive invitation: Join our VIP program and unlock premium benefits today!",
)


def suggest_messages(goal: str) -> list[str]:
    goal = goal.strip()
    return [template.format(goal=goal) for template in MESSAGE_TEMPLATES]


def summarize_delivery(sent: int, failed: int) -> str:
    total = sent + failed
    if total == 0:
        return "No messages have been sent for this campaign yet."
    rate = round(sent / total * 100, 1)
    summary = f"Campaign reached {total} customers: {sent} sent successfully ({rate}%)"
    if failed:
        return f"{summary} and {failed} failed."
    return f"{summary} with no failures."

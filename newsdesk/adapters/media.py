"""Text payloads built from the editorial draft."""

from __future__ import annotations

from typing import Any

from newsdesk.domain.entities import ContentItem


class DraftPayloadProvider:
    """
    MediaProviderPort implementation that renders text payloads from the draft.

    Platforms that need a visual (instagram) are unavailable until the draft
    carries a media_url.
    """

    def get_payload(self, item: ContentItem, platform: str) -> dict[str, Any] | None:
        draft = item.draft
        if platform == "web":
            return {
                "title": draft.web_title or item.title,
                "body": draft.web_body or item.body_text,
                "summary": item.summary,
            }
        if platform == "mobile":
            return {
                "title": draft.push_title or item.title,
                "body": draft.push_body or draft.mobile_summary or item.summary,
            }
        if platform == "x":
            text = draft.x_text or item.title
            if draft.hashtags:
                text = f"{text} " + " ".join(f"#{tag.lstrip('#')}" for tag in draft.hashtags)
            return {"text": text[:280]}
        if platform == "instagram":
            if not draft.media_url:
                return None
            return {
                "caption": draft.instagram_caption or item.title,
                "media_url": draft.media_url,
            }
        return {"title": item.title, "summary": item.summary}

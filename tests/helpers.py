"""Test helpers: sample images, request bodies and a fake upstream."""

import base64

import httpx

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
PNG_DATA_URI = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
GENERATED_BYTES = b"\x89PNG\r\n\x1a\ngenerated-model-photo"

GEMINI_HOST = "generativelanguage.googleapis.com"
IMAGE_URL = "https://images.example.com/shirts/blue-shirt.png"


def make_request_body(**overrides) -> dict:
    """A valid raw generation request (wire field names)."""
    body = {
        "clothingItemUrl": PNG_DATA_URI,
        "modelGender": "female",
        "modelBodyType": "average",
        "modelAgeRange": "26-35",
        "modelEthnicity": "caucasian",
        "environmentDescription": "studio",
        "lightingStyle": "soft",
        "lensStyle": "portrait",
    }
    body.update(overrides)
    return body


def gemini_payload(*parts: dict) -> dict:
    """A generateContent response with one candidate holding ``parts``."""
    if not parts:
        parts = (
            {"text": "Here is your image."},
            {
                "inlineData": {
                    "mimeType": "image/png",
                    "data": base64.b64encode(GENERATED_BYTES).decode("ascii"),
                }
            },
        )
    return {"candidates": [{"content": {"role": "model", "parts": list(parts)}}]}


class FakeUpstream:
    """Stands in for both the clothing image host and the Gemini API."""

    def __init__(self):
        self.image_status = 200
        self.image_body = PNG_BYTES
        self.image_headers = {"content-type": "image/png"}
        self.image_error: Exception | None = None
        self.gemini_status = 200
        self.gemini_json: dict | None = gemini_payload()
        self.gemini_error: Exception | None = None
        self.image_calls = 0
        self.gemini_requests: list[httpx.Request] = []

    @property
    def gemini_calls(self) -> int:
        return len(self.gemini_requests)

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == GEMINI_HOST:
            self.gemini_requests.append(request)
            if self.gemini_error is not None:
                raise self.gemini_error
            return httpx.Response(self.gemini_status, json=self.gemini_json)

        self.image_calls += 1
        if self.image_error is not None:
            raise self.image_error
        return httpx.Response(
            self.image_status, content=self.image_body, headers=self.image_headers
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


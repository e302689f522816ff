"""Deterministic synthetic responses for demo mode.

Demo mode replaces every adapter call with a fixed payload chosen by request
kind, so the gateway's control flow can be exercised without live credentials.
No network I/O happens on this path.

Payloads:
    - `roadmap`: a fixed roadmap JSON document (materials plus steps).
    - `image`: a 1x1 PNG encoded as a data URI.
    - `text`: the prompt echoed back with a demo tag.
"""

import json

from gateway.core.contracts import CanonicalResponse, RequestKind, SynthesisRequest

DEMO_SOURCE = "demo"

DEMO_IMAGE_DATA_URI = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

DEMO_ROADMAP = {
    "materials": ["HB pencil", "2B pencil", "kneaded eraser", "sketch paper"],
    "steps": [
        {
            "title": "Gesture",
            "instruction": "Block in the overall movement with light, loose strokes.",
            "technicalTip": "Keep the pencil low on the page to avoid heavy lines.",
            "toolsNeeded": ["HB pencil"],
        },
        {
            "title": "Basic shapes",
            "instruction": "Break the subject into simple forms and check proportions.",
            "technicalTip": "Measure with the pencil held at arm's length.",
            "toolsNeeded": ["HB pencil"],
        },
        {
            "title": "Shading",
            "instruction": "Lay in the core shadows, then build mid-tones gradually.",
            "technicalTip": "Lift highlights with a kneaded eraser instead of rubbing.",
            "toolsNeeded": ["2B pencil", "kneaded eraser"],
        },
    ],
}


def demo_response(request: SynthesisRequest) -> CanonicalResponse:
    """Build the synthetic response for a validated request."""
    if request.kind is RequestKind.ROADMAP:
        result = json.dumps(DEMO_ROADMAP)
    elif request.kind is RequestKind.IMAGE:
        result = DEMO_IMAGE_DATA_URI
    else:
        result = f"[demo:{request.provider.value}] {request.prompt}"
    return CanonicalResponse.success(result, source=DEMO_SOURCE)

"""
Material classifier backed by the Groq chat completions API.

The frame is sent as a PNG data URL together with a fixed instruction prompt
that restricts the answer to 'plastic', 'organic', 'metal' or 'null'.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import cv2
import requests

from models.classification import ClassificationLabel
from models.config import DEFAULT_ENDPOINT, DEFAULT_MODEL
from models.frame import Frame
from .base import CLASSIFICATION_PROMPT, ClassificationFailure


@dataclass
class GroqClassifierConfig:
    """
    Configuration for GroqClassifier.

    Attributes:
        api_key: Bearer credential for the API.
        endpoint: OpenAI-compatible chat completions URL.
        model: Vision model name.
        temperature: Sampling temperature; 0 keeps answers deterministic.
        timeout_s: Request timeout. A timed out request counts as a failure.
    """
    api_key: str
    endpoint: str = DEFAULT_ENDPOINT
    model: str = DEFAULT_MODEL
    temperature: float = 0.0
    timeout_s: float = 30.0

    @classmethod
    def from_classifier_config(cls, classifier_cfg: Dict[str, Any]) -> "GroqClassifierConfig":
        api_key = classifier_cfg.get("api_key")
        if not api_key:
            raise ValueError(
                "No classifier API key configured (set classifier.secrets_file or "
                f"the {classifier_cfg.get('api_key_env', 'GROQ_API')} environment variable)"
            )
        return cls(
            api_key=api_key,
            endpoint=classifier_cfg.get("endpoint", DEFAULT_ENDPOINT),
            model=classifier_cfg.get("model", DEFAULT_MODEL),
            temperature=float(classifier_cfg.get("temperature", 0.0)),
            timeout_s=float(classifier_cfg.get("timeout_s", 30.0)),
        )


def encode_frame(frame: Frame) -> str:
    """Encode a frame as a base64 PNG data URL."""
    ok, buffer = cv2.imencode(".png", frame.pixels)
    if not ok:
        raise ClassificationFailure("Failed to encode frame as PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.tobytes()).decode("ascii")


class GroqClassifier:
    """
    Classifies the object in the bin with a single blocking HTTP request.

    classify() never raises: every failure is logged and returned as
    ClassificationLabel.UNKNOWN.

    Example:
        classifier = GroqClassifier(GroqClassifierConfig(api_key="..."))
        label = classifier.classify(frame)
    """

    def __init__(self, config: GroqClassifierConfig, session: Optional[requests.Session] = None):
        self.config = config
        self._session = session or requests.Session()

    def classify(self, frame: Frame) -> ClassificationLabel:
        try:
            image_url = encode_frame(frame)
            logging.info("Sending image to Groq for classification.")
            answer = self._request(image_url)
        except Exception as e:
            logging.error(f"Failed to process image for classification: {e}")
            return ClassificationLabel.UNKNOWN

        label = ClassificationLabel.from_response(answer)
        if label is ClassificationLabel.UNKNOWN:
            logging.warning(f"Unrecognised classification response: {answer!r}")
        else:
            logging.info(f"Image classified as: {label.value}")
        return label

    def _build_payload(self, image_url: str) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "temperature": self.config.temperature,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": CLASSIFICATION_PROMPT},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
        }

    def _request(self, image_url: str) -> str:
        """POST the chat completion and return the raw answer text."""
        try:
            response = self._session.post(
                self.config.endpoint,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                json=self._build_payload(image_url),
                timeout=self.config.timeout_s,
            )
            response.raise_for_status()
            body = response.json()
        except requests.Timeout as e:
            raise ClassificationFailure(f"Classification request timed out after {self.config.timeout_s}s") from e
        except (requests.RequestException, ValueError) as e:
            raise ClassificationFailure(f"Classification request failed: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ClassificationFailure(f"Malformed classification response: {body!r}") from e
        if not isinstance(content, str):
            raise ClassificationFailure(f"Classification content is not text: {content!r}")
        return content

    def close(self) -> None:
        self._session.close()

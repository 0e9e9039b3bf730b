"""
Material classification of the bin contents.
"""

from .base import CLASSIFICATION_PROMPT, ClassificationFailure, Classifier
from .credentials import inject_api_credentials
from .groq_client import GroqClassifier, GroqClassifierConfig, encode_frame

__all__ = [
    "CLASSIFICATION_PROMPT",
    "ClassificationFailure",
    "Classifier",
    "GroqClassifier",
    "GroqClassifierConfig",
    "encode_frame",
    "inject_api_credentials",
]

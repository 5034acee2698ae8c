"""Model package exports."""

from models.analysis import CuratedSet, OutfitAnalysis, Suggestion
from models.images import EncodedImage
from models.session import UserSession
from models.taxonomy import Category, normalize_category

__all__ = [
    "Category",
    "CuratedSet",
    "EncodedImage",
    "OutfitAnalysis",
    "Suggestion",
    "UserSession",
    "normalize_category",
]

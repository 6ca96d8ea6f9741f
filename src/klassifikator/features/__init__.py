"""Feature vector construction for serving-time requests."""

from klassifikator.features.builder import FeatureVectorBuilder, build_feature_vector

__all__ = ["FeatureVectorBuilder", "build_feature_vector"]

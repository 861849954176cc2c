"""
Raster provider endpoint constants and configuration.

This module contains all external endpoint paths and related constants.
Centralizing these values makes it easy to swap out endpoints or update API versions.
"""


# Raster Provider Endpoints
class RasterProviderEndpoints:
    """NDVI raster provider endpoint paths."""

    NDVI_IMAGE = "/api/copernicus-ndvi/{field_id}"

    @classmethod
    def get_ndvi_image(cls, field_id: int) -> str:
        """
        Get the NDVI image endpoint for a field.

        Args:
            field_id: Field ID

        Returns:
            Formatted endpoint path
        """
        return cls.NDVI_IMAGE.format(field_id=field_id)


# API Configuration Constants
class APIConstants:
    """General HTTP configuration constants."""

    # HTTP Headers
    ACCEPT_IMAGE = "image/png,image/jpeg,image/*"

    # Status codes at or above this value are retried
    RETRYABLE_STATUS = 500

# trip_composer/api/errors.py
"""Error taxonomy for itinerary composition.

Extraction errors are returned inside an ``ExtractionResult`` rather than
raised; the boundary errors are raised by the boundary wrappers and caught
by the component that owns the degradation policy.
"""


class TripComposerError(Exception):
    """Base class for every error raised by the composer."""

    kind = "error"


class ExtractionError(TripComposerError):
    """The model reply could not be turned into an itinerary."""

    kind = "extraction_error"


class MissingStructuredBlock(ExtractionError):
    """No fenced JSON block was found in the model reply."""

    kind = "missing_structured_block"


class MalformedStructuredBlock(ExtractionError):
    """A fenced block was found but is not a valid ``days`` payload."""

    kind = "malformed_structured_block"


class GenerationBoundaryError(TripComposerError):
    """Network failure, timeout or empty reply from the text model."""

    kind = "generation_boundary_error"


class RoutingBoundaryError(TripComposerError):
    """Directions request for a single day failed."""

    kind = "routing_boundary_error"


class GeocodingBoundaryError(TripComposerError):
    kind = "geocoding_boundary_error"


class ImageLookupError(TripComposerError):
    kind = "image_lookup_error"


class InvalidTransition(TripComposerError):
    """A conversation operation was invoked in a state that forbids it."""

    kind = "invalid_transition"


__all__ = [
    "TripComposerError",
    "ExtractionError",
    "MissingStructuredBlock",
    "MalformedStructuredBlock",
    "GenerationBoundaryError",
    "RoutingBoundaryError",
    "GeocodingBoundaryError",
    "ImageLookupError",
    "InvalidTransition",
]

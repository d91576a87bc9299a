"""Domain services for PlanBook.

Services contain business logic that doesn't naturally fit within a single entity.
They have no dependencies on infrastructure or external frameworks.
"""

from planbook.domain.services.filename_builder import FilenameBuilder, sanitize_segment
from planbook.domain.services.group_code_generator import GroupCodeGenerator
from planbook.domain.services.member_masking_service import MemberMaskingService
from planbook.domain.services.path_resolver import ContainerPath, PathResolver
from planbook.domain.services.payload_codec import PayloadCodec
from planbook.domain.services.payload_normalizer import PayloadNormalizer
from planbook.domain.services.payload_validator import (
    PayloadValidationError,
    PayloadValidator,
)

__all__ = [
    "ContainerPath",
    "FilenameBuilder",
    "GroupCodeGenerator",
    "MemberMaskingService",
    "PathResolver",
    "PayloadCodec",
    "PayloadNormalizer",
    "PayloadValidationError",
    "PayloadValidator",
    "sanitize_segment",
]

"""Document store for namespaced records.

Provides save, get, list, soft delete and template export/import over the
folder tree. Writes go to the canonical container only; reads go through
the resolution engine so records in older layouts stay reachable.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from planbook.application.services.resolution_engine import Resolution, ResolutionEngine
from planbook.core.logging import get_logger
from planbook.domain.entities.group import utcnow
from planbook.domain.entities.namespace import Namespace
from planbook.domain.entities.record import Record, RecordFilter, RecordRef
from planbook.domain.entities.record_kind import RecordKind, get_kind_spec
from planbook.domain.exceptions import (
    BackendUnavailableError,
    InvalidInputError,
    InvalidPayloadError,
    NotFoundError,
    RecordNotFoundError,
)
from planbook.domain.services.filename_builder import EXTENSION, FilenameBuilder
from planbook.domain.services.path_resolver import PathResolver
from planbook.domain.services.payload_codec import PayloadCodec
from planbook.domain.services.payload_normalizer import EVALUATION_FIELDS, PayloadNormalizer
from planbook.domain.services.payload_validator import PayloadValidationError, PayloadValidator
from planbook.infrastructure.storage.base import StorageBackend, StorageNode

logger = get_logger(__name__)

TEMPLATE_VERSION = "1.0"
SUPPORTED_TEMPLATE_VERSIONS = frozenset({TEMPLATE_VERSION})


class DocumentStore:
    """CRUD over structured records addressed by namespace and kind."""

    def __init__(
        self,
        backend: StorageBackend,
        resolver: PathResolver,
        engine: ResolutionEngine | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the document store.

        Args:
            backend: Storage backend.
            resolver: Path resolver for the folder layout.
            engine: Resolution engine; built from the backend if omitted.
            clock: Returns the current time; drives the file name date stamp.
        """
        self.backend = backend
        self.resolver = resolver
        self.engine = engine or ResolutionEngine(backend, resolver)
        self.clock = clock or utcnow

    async def save(self, namespace: Namespace, kind: RecordKind, payload: dict[str, Any]) -> RecordRef:
        """Write a record to the namespace's canonical container.

        The file name is ``<prefix>_<logical key>_<YYYYMMDD>.json``. If a
        file whose name starts with that stem already exists in the
        container, it is overwritten in place.

        Args:
            namespace: Owning namespace.
            kind: Record kind.
            payload: Record payload; legacy shapes are normalized first.

        Returns:
            Reference to the written record.

        Raises:
            InvalidPayloadError: If required fields are missing or malformed.
            StorageUnavailableError: If the backend cannot be reached.
        """
        kind = RecordKind(kind)
        spec = get_kind_spec(kind)

        if isinstance(payload, dict):
            payload = PayloadNormalizer.normalize(kind, payload)
        errors = PayloadValidator.validate(kind, payload)
        if errors:
            raise InvalidPayloadError(kind.value, errors)

        logical_key = FilenameBuilder.logical_key(spec, payload)
        stem = FilenameBuilder.stem(spec, logical_key, self.clock().date())
        content = PayloadCodec.encode(payload)

        folder_id = await self.engine.ensure(self.resolver.canonical(namespace, kind))
        existing = await self._find_by_stem(folder_id, stem)
        if existing is not None:
            node = await self.backend.write_file(folder_id, existing.name, content, file_id=existing.id)
        else:
            node = await self.backend.write_file(folder_id, stem + EXTENSION, content)

        logger.info(
            "Record saved",
            namespace=str(namespace),
            kind=kind.value,
            record_id=node.id,
            logical_key=logical_key,
            overwritten=existing is not None,
        )
        return RecordRef(
            id=node.id,
            namespace=namespace,
            kind=kind,
            name=node.name,
            logical_key=logical_key,
            created=existing is None,
        )

    async def _find_by_stem(self, folder_id: str, stem: str) -> StorageNode | None:
        for node in await self.backend.list_children(folder_id):
            if not node.is_folder and node.name.startswith(stem):
                return node
        return None

    async def get(self, namespace: Namespace, kind: RecordKind, record_id: str) -> Record | None:
        """Fetch one record by id.

        Returns None when the id is unknown, trashed, belongs to another
        kind, or the backend fails. Never raises for backend errors.
        """
        kind = RecordKind(kind)
        spec = get_kind_spec(kind)
        try:
            node = await self.backend.get_node(record_id)
            if node.is_folder or not FilenameBuilder.matches_kind(spec, node.name):
                return None
            content = await self.backend.read_file(node.id)
            source = await self.engine.source_of(namespace, kind, node)
            return ResolutionEngine.to_record(node, content, kind, source)
        except NotFoundError:
            return None
        except BackendUnavailableError as e:
            logger.warning("Record lookup degraded", namespace=str(namespace), kind=kind.value, record_id=record_id, error=str(e))
            return None
        except ValueError as e:
            logger.warning("Record file is not a JSON object", record_id=record_id, error=str(e))
            return None

    async def resolve(
        self,
        namespace: Namespace,
        kind: RecordKind,
        record_filter: RecordFilter | None = None,
    ) -> Resolution:
        """List records with the tier they came from and a degraded flag."""
        record_filter = record_filter or RecordFilter()
        resolution = await self.engine.resolve(namespace, kind, record_filter.scope_token)
        if record_filter.fields:
            resolution.records = [r for r in resolution.records if record_filter.matches(r)]
        return resolution

    async def list(
        self,
        namespace: Namespace,
        kind: RecordKind,
        record_filter: RecordFilter | None = None,
    ) -> list[Record]:
        """List records, newest first. Never raises for backend errors."""
        return (await self.resolve(namespace, kind, record_filter)).records

    async def soft_delete(self, namespace: Namespace, kind: RecordKind, record_id: str) -> bool:
        """Move a record to the backend's trash.

        Only records in the namespace's canonical or legacy containers can
        be trashed; an id that belongs to another namespace counts as absent.

        Returns:
            True if the record was trashed, False if it was not found.

        Raises:
            StorageUnavailableError: If the backend cannot be reached.
        """
        kind = RecordKind(kind)
        spec = get_kind_spec(kind)
        try:
            node = await self.backend.get_node(record_id)
            if node.is_folder or not FilenameBuilder.matches_kind(spec, node.name):
                return False
            # Only files in the namespace's own containers
            if not await self.engine.owns(namespace, kind, node):
                return False
            await self.backend.trash(node.id)
        except NotFoundError:
            return False

        logger.info("Record trashed", namespace=str(namespace), kind=kind.value, record_id=record_id)
        return True

    @staticmethod
    def template_payload(kind: RecordKind, payload: dict[str, Any]) -> dict[str, Any]:
        """Reduce a payload to the fields a shared template may carry.

        Personal data is dropped: roster student names become numbered
        placeholders and result entries are emptied.
        """
        spec = get_kind_spec(kind)
        reduced = {f: payload[f] for f in spec.template_fields if f in payload}

        if kind is RecordKind.PLANS:
            reduced["evaluations"] = [
                {f: e[f] for f in EVALUATION_FIELDS if f in e}
                for e in reduced.get("evaluations", [])
                if isinstance(e, dict)
            ]
        elif kind is RecordKind.ROSTERS:
            reduced["students"] = [
                {"number": n, "name": f"Student {n}"}
                for n in range(1, len(reduced.get("students", [])) + 1)
            ]
        elif kind is RecordKind.RESULTS:
            reduced["results"] = []
        return reduced

    async def export_template(self, namespace: Namespace, kind: RecordKind, record_id: str) -> dict[str, Any]:
        """Export a record as a shareable template document.

        Raises:
            RecordNotFoundError: If the record does not exist.
            InvalidInputError: If the kind cannot be exported.
        """
        kind = RecordKind(kind)
        if not get_kind_spec(kind).template_fields:
            raise InvalidInputError(f"{kind.value} records cannot be exported as templates")

        record = await self.get(namespace, kind, record_id)
        if record is None:
            raise RecordNotFoundError(record_id, kind.value)

        return {
            "templateVersion": TEMPLATE_VERSION,
            "kind": kind.value,
            "exportedAt": self.clock().isoformat(),
            "payload": self.template_payload(kind, record.payload),
        }

    async def import_template(self, namespace: Namespace, template: dict[str, Any] | str | bytes) -> RecordRef:
        """Save a template document as a record in ``namespace``.

        The template's version and kind are checked and its payload is
        validated before anything is written.

        Raises:
            InvalidPayloadError: If the template or its payload is rejected.
            StorageUnavailableError: If the backend cannot be reached.
        """
        if isinstance(template, (str, bytes)):
            try:
                template = PayloadCodec.decode(template)
            except ValueError as e:
                raise InvalidPayloadError(
                    "template",
                    [PayloadValidationError(field="", message=str(e), code="invalid_json")],
                ) from e

        if not isinstance(template, dict):
            raise InvalidPayloadError(
                "template",
                [PayloadValidationError(field="", message="Template must be an object", code="invalid_type")],
            )

        errors = []
        version = template.get("templateVersion")
        if version not in SUPPORTED_TEMPLATE_VERSIONS:
            errors.append(
                PayloadValidationError(
                    field="templateVersion",
                    message=f"Unsupported template version: {version!r}",
                    code="unsupported_version",
                )
            )

        kind = None
        try:
            kind = RecordKind(template.get("kind"))
        except ValueError:
            errors.append(
                PayloadValidationError(field="kind", message=f"Unknown kind: {template.get('kind')!r}", code="unknown_kind")
            )
        else:
            if not get_kind_spec(kind).template_fields:
                errors.append(
                    PayloadValidationError(field="kind", message=f"{kind.value} records cannot be imported", code="unknown_kind")
                )

        if not isinstance(template.get("payload"), dict):
            errors.append(
                PayloadValidationError(field="payload", message="Template payload must be an object", code="invalid_type")
            )

        if errors:
            raise InvalidPayloadError("template", errors)

        ref = await self.save(namespace, kind, template["payload"])
        logger.info("Template imported", namespace=str(namespace), kind=kind.value, record_id=ref.id)
        return ref

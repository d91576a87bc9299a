"""Path resolver: where a namespace's records live in the folder tree.

The tree layout changed over time. Data first lived in kind folders
directly under the root (one flat space per installation); later each user
and group got an isolated subtree. The resolver lists the current location
first and the older ones after it, so old data stays reachable without a
migration pass.

Layouts (``<root>`` is the configured root folder name)::

    <root>/users/<user>/<kind folder>          personal, canonical
    <root>/<kind folder>                       personal, legacy flat root
    <root>/groups/<CODE>/<kind folder>         group, canonical
    <root>/school_<CODE>/<kind folder>         group, legacy

The resolver performs no I/O; the same inputs always give the same paths.
"""

from dataclasses import dataclass

from planbook.domain.entities.namespace import Namespace
from planbook.domain.entities.record_kind import RecordKind, get_kind_spec
from planbook.domain.services.filename_builder import sanitize_segment

USERS_FOLDER = "users"
GROUPS_FOLDER = "groups"
LEGACY_GROUP_PREFIX = "school_"


@dataclass(frozen=True)
class ContainerPath:
    """Folder names from the backend root down to a container."""

    segments: tuple[str, ...]
    legacy: bool = False

    def child(self, name: str) -> "ContainerPath":
        return ContainerPath(self.segments + (name,), self.legacy)

    def __str__(self) -> str:
        return "/".join(self.segments)


class PathResolver:
    """Computes candidate containers for a (namespace, kind) pair."""

    def __init__(self, root_name: str = "PlanBook", legacy_root_names: tuple[str, ...] | list[str] = ()) -> None:
        self.root_name = root_name
        self.legacy_root_names = tuple(n for n in legacy_root_names if n != root_name)

    def user_token(self, user_id: str) -> str:
        return sanitize_segment(user_id)

    def namespace_root(self, namespace: Namespace) -> ContainerPath:
        """Canonical container holding all of a namespace's kind folders."""
        if namespace.is_group:
            return ContainerPath((self.root_name, GROUPS_FOLDER, namespace.owner))
        return ContainerPath((self.root_name, USERS_FOLDER, self.user_token(namespace.owner)))

    def legacy_group_root(self, code: str, root_name: str | None = None) -> ContainerPath:
        return ContainerPath((root_name or self.root_name, f"{LEGACY_GROUP_PREFIX}{code}"), legacy=True)

    def group_roots(self, code: str) -> list[ContainerPath]:
        """Places a group's root may sit in, canonical first."""
        namespace = Namespace.group(code)
        return [self.namespace_root(namespace)] + [
            self.legacy_group_root(namespace.owner, root) for root in (self.root_name,) + self.legacy_root_names
        ]

    def groups_root(self) -> ContainerPath:
        """Container whose children are the canonical group namespaces."""
        return ContainerPath((self.root_name, GROUPS_FOLDER))

    def tree_roots(self) -> list[ContainerPath]:
        """Root folders, current first; legacy group folders sit directly under these."""
        return [ContainerPath((self.root_name,))] + [
            ContainerPath((name,), legacy=True) for name in self.legacy_root_names
        ]

    def canonical(self, namespace: Namespace, kind: RecordKind) -> ContainerPath:
        spec = get_kind_spec(kind)
        return self.namespace_root(namespace).child(spec.folder)

    def legacy(self, namespace: Namespace, kind: RecordKind) -> list[ContainerPath]:
        spec = get_kind_spec(kind)
        folders = (spec.folder,) + spec.legacy_folders
        roots = (self.root_name,) + self.legacy_root_names

        paths: list[ContainerPath] = []
        for root in roots:
            if namespace.is_group:
                base = self.legacy_group_root(namespace.owner, root)
                paths.extend(base.child(folder) for folder in folders)
            else:
                paths.extend(ContainerPath((root, folder), legacy=True) for folder in folders)

        if not namespace.is_group:
            # Legacy folder names inside the isolated layout
            canonical_root = self.namespace_root(namespace)
            paths[:0] = [
                ContainerPath(canonical_root.segments + (folder,), legacy=True)
                for folder in spec.legacy_folders
            ]
        return paths

    def candidates(self, namespace: Namespace, kind: RecordKind) -> list[ContainerPath]:
        """Ordered candidate containers, most preferred first."""
        return [self.canonical(namespace, kind)] + self.legacy(namespace, kind)

    def search_prefix(self, kind: RecordKind) -> str:
        return f"{get_kind_spec(kind).prefix}_"

    @staticmethod
    def code_from_legacy_folder(name: str) -> str | None:
        if name.startswith(LEGACY_GROUP_PREFIX):
            return name[len(LEGACY_GROUP_PREFIX) :] or None
        return None

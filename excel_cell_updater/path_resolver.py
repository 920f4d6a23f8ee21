"""Resolution of template sources and output destinations."""

import os
import logging
from dataclasses import dataclass
from importlib import resources
from typing import BinaryIO, Callable, List, Optional, Tuple

from .config_manager import ConfigManager, DEFAULT_RESOURCE_ROOT_PREFIX
from .utils.exceptions import TemplateNotFoundError, ValidationError
from .utils.file_utils import ensure_directory_exists

logger = logging.getLogger(__name__)


@dataclass
class ResolvedLocation:
    """Concrete locations for one update run."""

    source_stream: Optional[BinaryIO]
    destination_path: str
    destination_directory_created: bool = False

    def close(self) -> None:
        """Release the source stream, if any."""
        if self.source_stream is not None:
            self.source_stream.close()
            self.source_stream = None


class PathResolver:
    """Resolves template references and output paths into concrete locations.

    Templates are looked up on the filesystem first, then as a resource
    bundled in ``resource_package``. Relative output paths are anchored to an
    explicit base directory, never guessed from the working directory name.
    """

    def __init__(
        self,
        base_directory: Optional[str] = None,
        resource_package: Optional[str] = None,
        resource_root_prefix: str = DEFAULT_RESOURCE_ROOT_PREFIX,
    ) -> None:
        self.base_directory = base_directory or None
        self.resource_package = resource_package or None
        self.resource_root_prefix = resource_root_prefix or ""

    @classmethod
    def from_config(cls, config_manager: Optional[ConfigManager] = None) -> "PathResolver":
        """Build a resolver from application configuration."""
        app_config = (config_manager or ConfigManager()).get_app_config()
        return cls(
            base_directory=app_config["base_directory"],
            resource_package=app_config["resource_package"],
            resource_root_prefix=app_config["resource_root_prefix"],
        )

    def resolve_source(self, template_ref: str) -> BinaryIO:
        """Open the template as a binary stream; the caller must close it.

        Raises:
            TemplateNotFoundError: if neither a file nor a bundled resource
                matches, listing both locations tried.
        """
        if not template_ref:
            raise ValidationError("Template reference must not be empty")

        strategies: List[Callable[[str], Tuple[Optional[BinaryIO], str]]] = [
            self._open_from_filesystem,
            self._open_from_resources,
        ]

        attempted = []
        for strategy in strategies:
            stream, location = strategy(template_ref)
            attempted.append(location)
            if stream is not None:
                logger.info(f"Resolved template '{template_ref}' from {location}")
                return stream

        logger.error(f"Template '{template_ref}' not found, tried: {attempted}")
        raise TemplateNotFoundError(template_ref, attempted)

    def _open_from_filesystem(self, template_ref: str) -> Tuple[Optional[BinaryIO], str]:
        path = os.path.abspath(template_ref)
        if os.path.isfile(path):
            return open(path, "rb"), f"file '{path}'"
        return None, f"file '{path}'"

    def _open_from_resources(self, template_ref: str) -> Tuple[Optional[BinaryIO], str]:
        resource_name = template_ref.replace("\\", "/")
        if self.resource_root_prefix and resource_name.startswith(self.resource_root_prefix):
            resource_name = resource_name[len(self.resource_root_prefix):]
        resource_name = resource_name.lstrip("/")

        if not self.resource_package:
            return None, f"resource '{resource_name}' (no resource package configured)"

        location = f"resource '{self.resource_package}:{resource_name}'"
        try:
            resource = resources.files(self.resource_package).joinpath(resource_name)
        except ModuleNotFoundError:
            logger.warning(f"Resource package '{self.resource_package}' is not importable")
            return None, location

        if not resource.is_file():
            return None, location
        return resource.open("rb"), location

    def resolve_destination(self, output_ref: str, base_directory: Optional[str] = None) -> str:
        """Return the absolute destination path, creating parent directories.

        Absolute paths are returned unchanged. Relative ones are joined to
        ``base_directory``, else the configured base directory, else the
        current working directory.
        """
        destination_path, _ = self._prepare_destination(output_ref, base_directory)
        return destination_path

    def resolve(
        self,
        template_ref: Optional[str],
        output_ref: str,
        base_directory: Optional[str] = None,
    ) -> ResolvedLocation:
        """Resolve both ends of an update run.

        The destination is prepared before the template is opened, so a
        failing directory creation never leaks an open stream.
        """
        destination_path, created = self._prepare_destination(output_ref, base_directory)
        source_stream = self.resolve_source(template_ref) if template_ref else None
        return ResolvedLocation(
            source_stream=source_stream,
            destination_path=destination_path,
            destination_directory_created=created,
        )

    def _prepare_destination(
        self, output_ref: str, base_directory: Optional[str]
    ) -> Tuple[str, bool]:
        if not output_ref:
            raise ValidationError("Output path must not be empty")

        if os.path.isabs(output_ref):
            destination_path = output_ref
        else:
            base = base_directory or self.base_directory or os.getcwd()
            destination_path = os.path.abspath(os.path.join(base, output_ref))

        created = ensure_directory_exists(os.path.dirname(destination_path))
        if created:
            logger.info(f"Created output directory: {os.path.dirname(destination_path)}")
        return destination_path, created

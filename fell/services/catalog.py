"""Repository catalog: the set of managed repositories"""

import glob
import os
from pathlib import Path
from typing import Iterable, List, Optional, Union, TYPE_CHECKING

from fell.constants import (
    CATALOG_COMMENT,
    CATALOG_ENV_VAR,
    CATALOG_SEARCH_PATHS,
    GLOB_CHARS,
)
from fell.exceptions import ConfigurationError
from fell.logging_config import get_logger
from fell.models.repository import RepositoryRef, RepositorySet

if TYPE_CHECKING:
    from fell.config import Config

logger = get_logger(__name__)


def resolve_catalog_file(explicit: Optional[str] = None) -> Path:
    """Locate the catalog file.

    Priority order:
    1. explicit path (from config / command line)
    2. $FELL_CATALOG environment variable
    3. ~/.config/fell/repos
    4. ~/.fell-repos

    Raises:
        ConfigurationError: if no catalog file can be found
    """
    if explicit:
        path = Path(os.path.expandvars(explicit)).expanduser()
        if not path.is_file():
            raise ConfigurationError("catalog file does not exist", str(path))
        return path

    env_path = os.environ.get(CATALOG_ENV_VAR)
    if env_path:
        path = Path(os.path.expandvars(env_path)).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"${CATALOG_ENV_VAR} points to a missing file", str(path))
        return path

    for candidate in CATALOG_SEARCH_PATHS:
        path = Path(candidate).expanduser()
        if path.is_file():
            return path

    raise ConfigurationError(
        f"no catalog file found (set ${CATALOG_ENV_VAR} or create {CATALOG_SEARCH_PATHS[0]})"
    )


class RepositoryCatalog:
    """Loads managed repository paths from a catalog file and filters them.

    One repository per line, ``<path> [<clone-url>]``. Paths may use ``~``,
    environment variables and glob patterns; relative paths are resolved
    against the catalog file's directory.
    """

    def __init__(self, catalog_file: Union[str, Path], repos_root: Optional[Union[str, Path]] = None):
        self.catalog_file = Path(catalog_file)
        self.repos_root = (
            Path(repos_root).expanduser().resolve()
            if repos_root
            else self.catalog_file.expanduser().resolve().parent
        )

    @classmethod
    def from_config(cls, config: "Config") -> "RepositoryCatalog":
        """Create a catalog from the resolved catalog file of a Config."""
        return cls(resolve_catalog_file(config.get("catalog_file")), config.get("repos_root"))

    def _read_lines(self) -> List[str]:
        try:
            with open(self.catalog_file, encoding="utf-8") as f:
                return f.readlines()
        except OSError as e:
            logger.error(f"Could not read catalog {self.catalog_file}: {e}")
            raise ConfigurationError(f"cannot read catalog: {e.strerror or e}", str(self.catalog_file))
        except UnicodeDecodeError as e:
            logger.error(f"Catalog {self.catalog_file} is not valid UTF-8: {e}")
            raise ConfigurationError("catalog is not valid UTF-8 text", str(self.catalog_file))

    def _make_ref(self, path: Path, url: Optional[str] = None) -> RepositoryRef:
        rel_path = str(path)
        for candidate in (path, path.resolve()):
            try:
                rel_path = candidate.relative_to(self.repos_root).as_posix()
                break
            except ValueError:
                continue
        return RepositoryRef(path=path, name=path.name, rel_path=rel_path, url=url)

    def _expand_path(self, raw: str) -> Path:
        path = Path(os.path.expandvars(raw)).expanduser()
        if not path.is_absolute():
            path = self.catalog_file.expanduser().resolve().parent / path
        return Path(os.path.normpath(path))

    def load(self) -> RepositorySet:
        """Load every configured repository, in catalog order.

        Glob lines expand to their matching directories in sorted order.

        Raises:
            ConfigurationError: if the catalog cannot be read or a line is malformed
        """
        refs: List[RepositoryRef] = []
        for lineno, line in enumerate(self._read_lines(), start=1):
            line = line.strip()
            if not line or line.startswith(CATALOG_COMMENT):
                continue

            fields = line.split()
            if len(fields) > 2:
                raise ConfigurationError(
                    f"line {lineno}: expected '<path> [<url>]', got {len(fields)} fields",
                    str(self.catalog_file),
                )
            raw_path = fields[0]
            url = fields[1] if len(fields) == 2 else None

            if any(char in raw_path for char in GLOB_CHARS):
                if url:
                    raise ConfigurationError(
                        f"line {lineno}: a glob pattern cannot carry a clone URL",
                        str(self.catalog_file),
                    )
                pattern = str(self._expand_path(raw_path))
                matches = sorted(glob.glob(pattern))
                logger.debug(f"Pattern {raw_path} matched {len(matches)} path(s)")
                refs.extend(
                    self._make_ref(Path(match)) for match in matches if os.path.isdir(match)
                )
            else:
                refs.append(self._make_ref(self._expand_path(raw_path), url))

        repos = RepositorySet(refs)
        logger.debug(f"Catalog {self.catalog_file} lists {len(repos)} repositories")
        return repos

    def list_repositories(
        self,
        exclude: Iterable[str] = (),
        scope: Optional[str] = None,
        include_missing: bool = False,
    ) -> RepositorySet:
        """List the managed repositories after exclusion and scope filtering.

        Args:
            exclude: Repository names (or relative paths) to leave out
            scope: Keep only repositories whose relative path or name starts with this prefix
            include_missing: Also list entries whose directory does not exist yet

        Returns:
            RepositorySet in catalog order
        """
        excluded = set(exclude)
        repos = self.load()

        def keep(repo: RepositoryRef) -> bool:
            if repo.name in excluded or repo.rel_path in excluded:
                return False
            if scope and not (repo.rel_path.startswith(scope) or repo.name.startswith(scope)):
                return False
            if not include_missing and not repo.path.is_dir():
                logger.debug(f"Skipping {repo.rel_path}: directory does not exist")
                return False
            return True

        filtered = repos.filter(keep)
        logger.info(
            f"{len(filtered)} of {len(repos)} repositories selected"
            + (f" (scope: {scope})" if scope else "")
        )
        return filtered

"""Connection settings for the garden repository and its upstream template.

Reads settings from CLI args, environment variables, .env files and YAML
config fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    GARDEN_GITHUB_TOKEN: API token (falls back to GITHUB_TOKEN) (required)
    GARDEN_OWNER: Owner of the user's garden repository (required)
    GARDEN_REPOSITORY: Name of the user's garden repository (required)
    GARDEN_TEMPLATE_OWNER: Owner of the upstream template (default: oleeskild)
    GARDEN_TEMPLATE_REPOSITORY: Upstream template name (default: digitalgarden)
    GARDEN_API_URL: API base URL (default: https://api.github.com)
    GARDEN_BRANCH: Branch content is published to (default: repository default branch)
    GARDEN_MAX_PARALLEL_REQUESTS: Max parallel file requests (default: 1)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TEMPLATE_OWNER = "oleeskild"
DEFAULT_TEMPLATE_REPOSITORY = "digitalgarden"


@dataclass
class Config:
    token: str
    owner: str
    repository: str
    template_owner: str = DEFAULT_TEMPLATE_OWNER
    template_repository: str = DEFAULT_TEMPLATE_REPOSITORY
    api_url: str = DEFAULT_API_URL
    branch: str | None = None
    debug: bool = False
    max_parallel_requests: int = 1


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate (normalised in place).

    Raises:
        ValueError: If the API URL is malformed or a required value is empty.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")

    if not config.token.strip():
        raise ValueError(
            "GitHub token cannot be empty. Set GARDEN_GITHUB_TOKEN environment variable."
        )

    for field_name, env_name in (
        ("owner", "GARDEN_OWNER"),
        ("repository", "GARDEN_REPOSITORY"),
        ("template_owner", "GARDEN_TEMPLATE_OWNER"),
        ("template_repository", "GARDEN_TEMPLATE_REPOSITORY"),
    ):
        value = getattr(config, field_name).strip()
        if not value:
            raise ValueError(
                f"{field_name.replace('_', ' ').capitalize()} cannot be empty. "
                f"Set {env_name} environment variable."
            )
        if "/" in value:
            raise ValueError(
                f"Invalid {field_name.replace('_', ' ')} '{value}': must not contain '/'"
            )
        setattr(config, field_name, value)

    if not (1 <= config.max_parallel_requests <= 20):
        raise ValueError(
            f"Invalid max_parallel_requests {config.max_parallel_requests}: "
            "must be a number between 1 and 20"
        )

    if config.owner == config.template_owner and (
        config.repository == config.template_repository
    ):
        logger.warning(
            "Garden repository %s/%s is the template itself; updates would target upstream",
            config.owner,
            config.repository,
        )


def load_config(
    token: str | None = None,
    owner: str | None = None,
    repository: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` first so .env
    values are visible through ``os.getenv()``.

    Args:
        token: Override API token.
        owner: Override garden repository owner.
        repository: Override garden repository name.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Values from the YAML ``github`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a required value is missing after checking all sources.
    """
    fb = yaml_fallbacks or {}

    final_token = (
        token
        or os.getenv("GARDEN_GITHUB_TOKEN")
        or os.getenv("GITHUB_TOKEN")
        or fb.get("token")
    )
    if not final_token:
        raise ValueError(
            "GitHub token not found. Set GARDEN_GITHUB_TOKEN environment variable, "
            "pass --token CLI argument, or add 'token' to config.yml."
        )

    final_owner = owner or os.getenv("GARDEN_OWNER") or fb.get("owner")
    if not final_owner:
        raise ValueError(
            "Repository owner not found. Set GARDEN_OWNER environment variable, "
            "pass --owner CLI argument, or add 'owner' to config.yml."
        )

    final_repository = (
        repository or os.getenv("GARDEN_REPOSITORY") or fb.get("repository")
    )
    if not final_repository:
        raise ValueError(
            "Repository name not found. Set GARDEN_REPOSITORY environment variable, "
            "pass --repository CLI argument, or add 'repository' to config.yml."
        )

    template_owner = (
        os.getenv("GARDEN_TEMPLATE_OWNER")
        or fb.get("template_owner")
        or DEFAULT_TEMPLATE_OWNER
    )
    template_repository = (
        os.getenv("GARDEN_TEMPLATE_REPOSITORY")
        or fb.get("template_repository")
        or DEFAULT_TEMPLATE_REPOSITORY
    )
    api_url = os.getenv("GARDEN_API_URL") or fb.get("api_url") or DEFAULT_API_URL
    branch = os.getenv("GARDEN_BRANCH") or fb.get("branch") or None

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("GARDEN_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = bool(fb.get("debug", False))

    max_parallel_raw = os.getenv("GARDEN_MAX_PARALLEL_REQUESTS")
    if max_parallel_raw is not None:
        try:
            final_max_parallel = int(max_parallel_raw)
        except ValueError:
            raise ValueError(
                f"Invalid GARDEN_MAX_PARALLEL_REQUESTS '{max_parallel_raw}': must be a number between 1 and 20"
            ) from None
    elif "max_parallel_requests" in fb:
        final_max_parallel = int(fb["max_parallel_requests"])
    else:
        final_max_parallel = 1

    config = Config(
        token=final_token.strip(),
        owner=final_owner,
        repository=final_repository,
        template_owner=template_owner,
        template_repository=template_repository,
        api_url=api_url,
        branch=branch,
        debug=final_debug,
        max_parallel_requests=final_max_parallel,
    )

    validate_config(config)

    return config

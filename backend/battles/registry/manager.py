from pathlib import Path

import structlog
import yaml

from battles.registry.types import GameConfig

logger = structlog.get_logger()


def _get_default_config_path() -> Path:  # pragma: no cover
    """Return the file-relative default path to games.yaml."""
    backend_root = Path(__file__).parent.parent.parent
    return backend_root / "config" / "games.yaml"


class GameRegistry:
    """Games known to the service, loaded once from a YAML file.

    A missing file yields an empty registry, so every game route answers 404.
    """

    def __init__(self, config_path: Path | None = None) -> None:
        self._games: dict[str, GameConfig] = {}
        self._config_path = config_path or _get_default_config_path()
        self._load_config()

    def _load_config(self) -> None:
        if not self._config_path.exists():
            logger.warning("games config not found, no games registered", path=str(self._config_path))
            return

        with self._config_path.open() as f:
            config = yaml.safe_load(f) or {}

        for game_data in config.get("games", []):
            game = GameConfig.model_validate(game_data)
            if game.slug in self._games:
                msg = f"Duplicate game slug {game.slug!r} in {self._config_path}"
                raise ValueError(msg)
            self._games[game.slug] = game

        logger.info("games loaded", count=len(self._games), path=str(self._config_path))

    def get_game(self, slug: str) -> GameConfig | None:
        return self._games.get(slug.lower())

    def get_games(self) -> list[GameConfig]:
        return list(self._games.values())

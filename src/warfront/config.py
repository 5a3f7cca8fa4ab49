"""Configuration management using Pydantic settings."""

from pathlib import Path

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from warfront.models import Side


class TroopConfig(BaseModel):
    """A deployable infantry template."""
    name: str
    template: str
    can_capture: bool = True


class DeployableConfig(BaseModel):
    """A crate-built deployable template.  ``ewr_range`` > 0 makes it an EWR."""
    name: str
    template: str
    ewr_range: float = 0.0


def _default_troops() -> dict[Side, list[TroopConfig]]:
    return {
        Side.RED: [
            TroopConfig(name="Standard", template="RSTANDARDTROOP"),
            TroopConfig(name="Anti Tank", template="RATTROOP"),
            TroopConfig(name="Mortar", template="RMORTARTROOP"),
            TroopConfig(name="Igla", template="RIGLATROOP", can_capture=False),
        ],
        Side.BLUE: [
            TroopConfig(name="Standard", template="BSTANDARDTROOP"),
            TroopConfig(name="Anti Tank", template="BATTROOP"),
            TroopConfig(name="Mortar", template="BMORTARTROOP"),
            TroopConfig(name="Stinger", template="BSTINGERTROOP", can_capture=False),
        ],
    }


def _default_deployables() -> dict[Side, list[DeployableConfig]]:
    return {
        Side.RED: [
            DeployableConfig(name="EWR 1L13", template="DEPRED1L13", ewr_range=80000),
            DeployableConfig(name="SA 6 Kub", template="DEPSA6", ewr_range=30000),
            DeployableConfig(name="SA 11 Buk", template="DEPSA11", ewr_range=40000),
            DeployableConfig(name="Shilka", template="DEPSHILKA"),
        ],
        Side.BLUE: [
            DeployableConfig(name="EWR AN/FPS-117", template="DEPBLUEFPS117", ewr_range=80000),
            DeployableConfig(name="Hawk", template="DEPHAWK", ewr_range=45000),
            DeployableConfig(name="Roland", template="DEPROLAND", ewr_range=12000),
            DeployableConfig(name="Vulcan", template="DEPVULCAN"),
        ],
    }


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence
    save_path: Path = Path("./data/warfront.json")

    # Objective lifecycle
    repair_time: int = 1800             # seconds per repair step at 100% logistics
    unit_cull_distance: float = 37040   # meters (20 nm)

    # Host boundary -- queue drain budget per tick
    max_spawns_per_tick: int = 8
    max_despawns_per_tick: int = 16

    # Templates
    logistics_templates: dict[Side, str] = {
        Side.RED: "RLOGI",
        Side.BLUE: "BLOGI",
        Side.NEUTRAL: "NLOGI",
    }
    crate_templates: dict[Side, str] = {
        Side.RED: "RCRATE",
        Side.BLUE: "BCRATE",
    }
    troops: dict[Side, list[TroopConfig]] = _default_troops()
    deployables: dict[Side, list[DeployableConfig]] = _default_deployables()

    def troop(self, side: Side, name: str) -> TroopConfig | None:
        for troop in self.troops.get(side, []):
            if troop.name == name:
                return troop
        return None

    def deployable(self, side: Side, name: str) -> DeployableConfig | None:
        for dep in self.deployables.get(side, []):
            if dep.name == name:
                return dep
        return None


settings = Settings()

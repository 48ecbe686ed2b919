# packforge/content/types.py
from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

logger = logging.getLogger(__name__)

__all__ = [
    "BuiltinType",
    "SpecialType",
    "TypeCatalog",
    "isJsonPath",
]



class BuiltinType(str, Enum):
    """Content types the host application ships and knows how to load."""
    AMMUNITION_DEF = "AmmunitionDef"
    ASSET_BUNDLE = "AssetBundle"
    AUDIO_CLIP = "AudioClip"
    CHASSIS_DEF = "ChassisDef"
    CONTRACT_OVERRIDE = "ContractOverride"
    FACTION_DEF = "FactionDef"
    HEAT_SINK_DEF = "HeatSinkDef"
    JUMP_JET_DEF = "JumpJetDef"
    LANCE_DEF = "LanceDef"
    MECH_DEF = "MechDef"
    PILOT_DEF = "PilotDef"
    PREFAB = "Prefab"
    SHOP_DEF = "ShopDef"
    SIM_GAME_CONSTANTS = "SimGameConstants"
    SIM_GAME_EVENT_DEF = "SimGameEventDef"
    SPRITE = "Sprite"
    STAR_SYSTEM_DEF = "StarSystemDef"
    TEXT = "Text"
    TEXTURE_2D = "Texture2D"
    TURRET_DEF = "TurretDef"
    UPGRADE_DEF = "UpgradeDef"
    VEHICLE_DEF = "VehicleDef"
    WEAPON_DEF = "WeaponDef"



class SpecialType(str, Enum):
    """Pseudo-types that never enter the manifest as-is."""
    # External media registered by file name for later playback
    VIDEO = "Video"
    # Audio banks registered by id
    SOUND_BANK = "SoundBank"
    # Patch file whose target id is stored inside the file
    ADVANCED_JSON_MERGE = "AdvancedJSONMerge"



_BUILTIN_NAMES = frozenset(member.value for member in BuiltinType)
_SPECIAL_NAMES = frozenset(member.value for member in SpecialType)



def isJsonPath(path: object) -> bool:
    return str(path).lower().endswith(".json")



class TypeCatalog:
    """
    Built-in and special types plus custom types declared by packages.

    Custom types are validated once, when a package declares them, and stay
    valid for every package processed after it within the run.
    """
    
    def __init__(self) -> None:
        # customType -> name of the package that declared it first
        self._custom: dict[str, str] = {}
    
    @staticmethod
    def isBuiltin(typeName: str) -> bool:
        return typeName in _BUILTIN_NAMES
    
    @staticmethod
    def isSpecial(typeName: str) -> bool:
        return typeName in _SPECIAL_NAMES
    
    def isCustom(self, typeName: str) -> bool:
        return typeName in self._custom
    
    def isKnown(self, typeName: str) -> bool:
        return self.isBuiltin(typeName) or self.isSpecial(typeName) or self.isCustom(typeName)
    
    def filterCustom(self, typeNames: Iterable[str], *, owner: str) -> list[str]:
        """
        Returns the custom type names `owner` may declare. Names colliding with
        a built-in or special type are dropped with a warning.
        """
        accepted: list[str] = []
        for typeName in typeNames:
            if self.isBuiltin(typeName) or self.isSpecial(typeName):
                logger.warning(
                    "'%s' declares custom type '%s' which collides with a built-in type; ignoring it",
                    owner,
                    typeName,
                )
                continue
            if typeName not in accepted:
                accepted.append(typeName)
        return accepted

    def declareCustom(self, typeNames: Iterable[str], *, owner: str) -> None:
        # Names must come from filterCustom(); the first declaring package keeps ownership
        for typeName in typeNames:
            self._custom.setdefault(typeName, owner)
    
    def customTypes(self) -> dict[str, str]:
        return dict(self._custom)

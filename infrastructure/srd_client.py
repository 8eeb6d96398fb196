# infrastructure/srd_client.py
"""
Client for the public 5e SRD API (https://www.dnd5eapi.co).

Covers class features, race traits and canonical spell/monster records that
the local structured-data server does not carry. Every lookup tolerates a
missing record: not-found and transport failures both yield None / [].
"""
import asyncio
import logging
from typing import List, Dict, Any, Optional
from urllib.parse import urlparse

from config import settings
from core.domain import BackendError, SrdRecord
from core.interfaces import IReferenceClient
from infrastructure.http_client import HttpJsonClient
from utils.common import name_to_index

logger = logging.getLogger(settings.LOGGER_NAME)


# ============= Formatters =============

def _names(refs: Optional[List[Dict[str, Any]]]) -> str:
    return ", ".join(r.get("name", "") for r in refs or [])


def format_spell(spell: Dict[str, Any]) -> str:
    school = (spell.get("school") or {}).get("name", "")
    lines = [
        f"**{spell['name']}**",
        f"*Level {spell.get('level', 0)} {school}{' (ritual)' if spell.get('ritual') else ''}*",
        "",
        f"**Casting Time:** {spell.get('casting_time', '')}",
        f"**Range:** {spell.get('range', '')}",
        f"**Components:** {', '.join(spell.get('components') or [])}",
        f"**Duration:** {'Concentration, ' if spell.get('concentration') else ''}{spell.get('duration', '')}",
        "",
        *(spell.get("desc") or []),
    ]
    if spell.get("higher_level"):
        lines += ["", "**At Higher Levels:**", *spell["higher_level"]]
    if spell.get("classes"):
        lines += ["", f"**Classes:** {_names(spell['classes'])}"]
    return "\n".join(lines)


def format_monster(monster: Dict[str, Any]) -> str:
    lines = [
        f"**{monster['name']}**",
        f"*{monster.get('size', '')} {monster.get('type', '')}, {monster.get('alignment', '')}*",
        "",
    ]
    armor = monster.get("armor_class") or []
    if armor:
        ac = armor[0]
        lines.append(f"**Armor Class:** {ac.get('value')} ({ac.get('type', '')})")
    lines += [
        f"**Hit Points:** {monster.get('hit_points')} ({monster.get('hit_dice', '')})",
        f"**Speed:** {', '.join(f'{k} {v}' for k, v in (monster.get('speed') or {}).items())}",
        "",
        "| STR | DEX | CON | INT | WIS | CHA |",
        "|-----|-----|-----|-----|-----|-----|",
        "| {strength} | {dexterity} | {constitution} | {intelligence} | {wisdom} | {charisma} |".format(
            **{k: monster.get(k, "-") for k in
               ("strength", "dexterity", "constitution", "intelligence", "wisdom", "charisma")}
        ),
        "",
        f"**Challenge:** {monster.get('challenge_rating')} ({monster.get('xp', 0)} XP)",
    ]
    for heading, key in (("Special Abilities", "special_abilities"), ("Actions", "actions")):
        if monster.get(key):
            lines += ["", f"**{heading}:**"]
            lines += [f"- **{a.get('name')}.** {a.get('desc', '')}" for a in monster[key]]
    return "\n".join(lines)


def format_class(cls: Dict[str, Any]) -> str:
    lines = [
        f"**{cls['name']}**",
        "",
        f"**Hit Die:** d{cls.get('hit_die')}",
        f"**Saving Throws:** {_names(cls.get('saving_throws'))}",
        f"**Proficiencies:** {_names(cls.get('proficiencies'))}",
    ]
    if cls.get("subclasses"):
        lines.append(f"**Subclasses:** {_names(cls['subclasses'])}")
    if cls.get("spellcasting"):
        ability = (cls["spellcasting"].get("spellcasting_ability") or {}).get("name", "")
        lines.append(f"**Spellcasting:** Yes ({ability})")
    return "\n".join(lines)


def format_race(race: Dict[str, Any]) -> str:
    bonuses = ", ".join(
        f"{(b.get('ability_score') or {}).get('name', '')} +{b.get('bonus')}"
        for b in race.get("ability_bonuses") or []
    )
    lines = [
        f"**{race['name']}**",
        "",
        f"**Speed:** {race.get('speed')} ft.",
        f"**Size:** {race.get('size', '')}. {race.get('size_description', '')}",
        "",
        f"**Ability Score Increases:** {bonuses}",
        "",
        f"**Languages:** {_names(race.get('languages'))}",
    ]
    if race.get("traits"):
        lines.append(f"**Traits:** {_names(race['traits'])}")
    if race.get("subraces"):
        lines.append(f"**Subraces:** {_names(race['subraces'])}")
    return "\n".join(lines)


def format_class_level(class_name: str, level: int, data: Dict[str, Any],
                       features: List[str]) -> str:
    lines = [
        f"**{class_name} Level {level}**",
        "",
        f"**Proficiency Bonus:** +{data.get('prof_bonus')}",
    ]
    if features:
        lines += ["", "**Features:**", *(f"- {f}" for f in features)]
    if data.get("class_specific"):
        lines += ["", "**Class Specific:**"]
        for key, value in data["class_specific"].items():
            lines.append(f"- {key.replace('_', ' ').title()}: {value}")
    return "\n".join(lines)


# ============= Client =============

class SrdClient(IReferenceClient):

    def __init__(self, http: HttpJsonClient, search_limit: int = settings.SRD_SEARCH_LIMIT):
        self.http = http
        self.base_url = http.base_url
        self.search_limit = search_limit
        self._base_path = urlparse(self.base_url).path.rstrip("/")

    async def _fetch(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """Fetch one SRD resource; None when missing or on any failure."""
        logger.info(f"[SRD] Fetching: {self.http.url_for(endpoint)}")
        try:
            return await self.http.aget_json(endpoint, params=params, allow_not_found=True)
        except BackendError as e:
            logger.error(f"[SRD] Fetch error for {endpoint}: {e.message}")
            return None

    def _relative(self, api_url: str) -> str:
        """Turn an API-relative reference url ('/api/2014/features/x') into an endpoint."""
        if self._base_path and api_url.startswith(self._base_path):
            return api_url[len(self._base_path):]
        return api_url

    def _record(self, kind: str, endpoint: str, data: Dict[str, Any], text: str,
                name: Optional[str] = None) -> SrdRecord:
        return SrdRecord(
            kind=kind,
            index=data.get("index", endpoint.rsplit("/", 1)[-1]),
            name=name or data.get("name", ""),
            text=text,
            url=f"{self.base_url}{endpoint}",
        )

    async def _get(self, kind: str, collection: str, name: str, formatter) -> Optional[SrdRecord]:
        index = name_to_index(name)
        if not index:
            return None
        data = await self._fetch(f"/{collection}/{index}")
        if not isinstance(data, dict) or "name" not in data:
            return None
        endpoint = f"/{collection}/{data.get('index', index)}"
        return self._record(kind, endpoint, data, formatter(data))

    async def get_spell(self, name: str) -> Optional[SrdRecord]:
        return await self._get("spell", "spells", name, format_spell)

    async def get_monster(self, name: str) -> Optional[SrdRecord]:
        return await self._get("monster", "monsters", name, format_monster)

    async def get_class(self, name: str) -> Optional[SrdRecord]:
        return await self._get("class", "classes", name, format_class)

    async def get_race(self, name: str) -> Optional[SrdRecord]:
        return await self._get("race", "races", name, format_race)

    async def get_class_level(self, class_name: str, level: int) -> Optional[SrdRecord]:
        class_index = name_to_index(class_name)
        if not class_index:
            return None
        endpoint = f"/classes/{class_index}/levels/{level}"
        data = await self._fetch(endpoint)
        if not isinstance(data, dict):
            return None

        refs = [r for r in data.get("features") or [] if r.get("url")]
        details = await asyncio.gather(*(self._fetch(self._relative(r["url"])) for r in refs))
        features = [
            f"**{d['name']}:** {' '.join(d.get('desc') or [])}"
            for d in details if isinstance(d, dict) and d.get("name")
        ]

        title = class_name.strip().title()
        text = format_class_level(title, level, data, features)
        record = self._record("class_level", endpoint, data, text, name=f"{title} Level {level}")
        record.index = f"{class_index}-{level}"
        return record

    async def _search(self, collection: str, params: Dict[str, Any], getter) -> List[SrdRecord]:
        listing = await self._fetch(f"/{collection}", params={k: v for k, v in params.items() if v is not None})
        if not isinstance(listing, dict) or not listing.get("results"):
            return []
        refs = listing["results"][: self.search_limit]
        records = await asyncio.gather(*(getter(r["index"]) for r in refs if r.get("index")))
        return [r for r in records if r]

    async def search_spells(self, name: Optional[str] = None, level: Optional[int] = None,
                            school: Optional[str] = None) -> List[SrdRecord]:
        return await self._search("spells", {"name": name, "level": level, "school": school}, self.get_spell)

    async def search_monsters(self, name: Optional[str] = None,
                              challenge_rating: Optional[float] = None) -> List[SrdRecord]:
        return await self._search(
            "monsters", {"name": name, "challenge_rating": challenge_rating}, self.get_monster
        )

    async def check_health(self) -> bool:
        return await self.http.probe("") is not None

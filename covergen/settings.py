import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple


SIZE_PRESETS: Dict[str, Tuple[int, int]] = {
    "hero": (1120, 400),
    "thumbnail": (1280, 720),  # 16:9
    "og": (1200, 630),
}

SIZE_CLASSES = ("hero", "thumbnail", "og", "custom")

LOGO_MODES = ("center", "corner")

DEFAULT_TEXTURE_URL = (
    "https://ejfcjiyxyifxjrmkchjx.supabase.co/storage/v1/object/public/backgrounds/texture.png"
)

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class RenderDefaults:
    """
    Process-wide rendering constants and deployment switches.

    Built once at start-up (usually via `from_env`) and passed down to every
    component; nothing mutates it afterwards.
    """

    quality: int = 90
    gradient_intensity: float = 0.8
    size: str = "og"
    logo_mode: str = "center"
    logo_height: int = 200
    min_logo_height: int = 60
    max_logo_height: int = 300
    logo_padding: int = 40
    # Fraction of canvas height covered by the bottom gradient band.
    gradient_band: float = 0.4
    brand_wash_opacity: float = 0.8
    watermark_height: int = 20
    watermark_offset: int = 40
    texture_enabled: bool = False
    texture_url: str = DEFAULT_TEXTURE_URL
    isolated_render: bool = True
    # Upper bound for either side of a custom canvas.
    max_canvas_side: int = 4096
    render_sessions: int = 2
    render_timeout: float = 15.0
    fetch_timeout: float = 15.0
    api_token: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RenderDefaults":
        env = os.environ if environ is None else environ
        return cls(
            texture_enabled=_env_flag(env, "COVERGEN_TEXTURE_ENABLED", False),
            texture_url=env.get("COVERGEN_TEXTURE_URL") or DEFAULT_TEXTURE_URL,
            isolated_render=_env_flag(env, "COVERGEN_ISOLATED_RENDER", True),
            max_canvas_side=max(1, int(env.get("COVERGEN_MAX_CANVAS_SIDE", "4096"))),
            render_sessions=max(1, int(env.get("COVERGEN_RENDER_SESSIONS", "2"))),
            render_timeout=float(env.get("COVERGEN_RENDER_TIMEOUT", "15")),
            fetch_timeout=float(env.get("COVERGEN_FETCH_TIMEOUT", "15")),
            api_token=(env.get("COVERGEN_API_TOKEN") or "").strip() or None,
        )


def _env_flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES

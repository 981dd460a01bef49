"""
音乐嵌入渲染

每个平台对应一个固定的 iframe 模板，只从经过校验的 https 链接中取出
路径信息填入模板，所有插值都做 HTML 转义。用户提交的内容永远不会被
原样拼进页面。

支持的平台：
- spotify: open.spotify.com/{track|album|playlist|artist|episode|show}/{id}
- soundcloud: soundcloud.com/{user}/{track}
- apple_music: music.apple.com/{country}/{album|playlist|song}/...
- custom_iframe: 任意 https 地址，放在 sandbox 中
"""
from __future__ import annotations

import html
import re
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import SplitResult, quote, urlsplit

from nexus.api.errors import ValidationError
from nexus.enums import MusicProvider

_SPOTIFY_KINDS = {"track", "album", "playlist", "artist", "episode", "show"}
_SPOTIFY_ID = re.compile(r"^[A-Za-z0-9]{10,40}$")
_APPLE_KINDS = {"album", "playlist", "song", "station"}
_SAFE_PATH_SEGMENT = re.compile(r"^[A-Za-z0-9._~%\-]+$")


@dataclass(frozen=True)
class Embed:
    provider: MusicProvider
    src: str
    height: int
    title: str

    def to_html(self) -> str:
        attrs = (
            f'src="{html.escape(self.src, quote=True)}" '
            f'title="{html.escape(self.title, quote=True)}" '
            f'width="100%" height="{self.height}" frameborder="0" loading="lazy"'
        )
        if self.provider == MusicProvider.custom_iframe:
            attrs += ' sandbox="allow-scripts allow-same-origin" referrerpolicy="no-referrer"'
        else:
            attrs += ' allow="autoplay; clipboard-write; encrypted-media; fullscreen; picture-in-picture"'
        return f"<iframe {attrs}></iframe>"


def _invalid(message: str) -> ValidationError:
    return ValidationError(message, code=400701, field="source_url")


def _parse_https(url: str) -> SplitResult:
    try:
        parts = urlsplit((url or "").strip())
    except ValueError:
        raise _invalid("Invalid URL")
    if parts.scheme != "https" or not parts.hostname:
        raise _invalid("Embed URL must use https")
    if parts.username or parts.password:
        raise _invalid("Embed URL cannot contain credentials")
    return parts


def _path_segments(parts: SplitResult) -> list[str]:
    segments = [s for s in parts.path.split("/") if s]
    for segment in segments:
        if not _SAFE_PATH_SEGMENT.match(segment):
            raise _invalid("Embed URL contains unsupported characters")
    return segments


def _spotify(parts: SplitResult) -> tuple[str, int]:
    if parts.hostname != "open.spotify.com":
        raise _invalid("Spotify links must point to open.spotify.com")
    segments = _path_segments(parts)
    # open.spotify.com/intl-xx/track/<id>
    if segments and segments[0].startswith("intl-"):
        segments = segments[1:]
    if len(segments) != 2 or segments[0] not in _SPOTIFY_KINDS or not _SPOTIFY_ID.match(segments[1]):
        raise _invalid("Unsupported Spotify link")
    kind, item_id = segments
    height = 152 if kind in {"track", "episode"} else 352
    return f"https://open.spotify.com/embed/{kind}/{item_id}", height


def _soundcloud(parts: SplitResult) -> tuple[str, int]:
    if parts.hostname not in {"soundcloud.com", "m.soundcloud.com", "www.soundcloud.com"}:
        raise _invalid("SoundCloud links must point to soundcloud.com")
    segments = _path_segments(parts)
    if not 1 <= len(segments) <= 3:
        raise _invalid("Unsupported SoundCloud link")
    canonical = "https://soundcloud.com/" + "/".join(segments)
    src = (
        "https://w.soundcloud.com/player/?url="
        + quote(canonical, safe="")
        + "&color=%23ff5500&auto_play=false&show_comments=false"
    )
    return src, 166 if len(segments) >= 2 else 450


def _apple_music(parts: SplitResult) -> tuple[str, int]:
    if parts.hostname != "music.apple.com":
        raise _invalid("Apple Music links must point to music.apple.com")
    segments = _path_segments(parts)
    if len(segments) < 3 or len(segments[0]) != 2 or segments[1] not in _APPLE_KINDS:
        raise _invalid("Unsupported Apple Music link")
    src = "https://embed.music.apple.com/" + "/".join(segments)
    # keep the ?i=<track> selector, drop everything else
    match = re.search(r"(?:^|&)i=(\d+)", parts.query or "")
    if match:
        src += f"?i={match.group(1)}"
    return src, 175 if match or segments[1] == "song" else 450


def _custom_iframe(parts: SplitResult) -> tuple[str, int]:
    return parts.geturl(), 380


_RENDERERS: dict[MusicProvider, Callable[[SplitResult], tuple[str, int]]] = {
    MusicProvider.spotify: _spotify,
    MusicProvider.soundcloud: _soundcloud,
    MusicProvider.apple_music: _apple_music,
    MusicProvider.custom_iframe: _custom_iframe,
}


def render_embed(provider: MusicProvider, source_url: str, *, title: str = "") -> Embed:
    """
    按平台模板生成嵌入

    Raises:
        ValidationError: 链接不是 https、域名不属于该平台、或格式不支持
    """
    parts = _parse_https(source_url)
    src, height = _RENDERERS[MusicProvider(provider)](parts)
    return Embed(provider=MusicProvider(provider), src=src, height=height, title=title or "Embedded player")


def validate_source_url(provider: MusicProvider, source_url: str) -> None:
    render_embed(provider, source_url)

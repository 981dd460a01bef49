from __future__ import annotations

import pytest

from nexus.api.errors import ValidationError
from nexus.enums import MusicProvider
from nexus.services.embeds import render_embed, validate_source_url


def test_spotify_track():
    embed = render_embed(
        MusicProvider.spotify, "https://open.spotify.com/intl-de/track/4uLU6hMCjMI75M1A2tKUQC?si=abc"
    )
    assert embed.src == "https://open.spotify.com/embed/track/4uLU6hMCjMI75M1A2tKUQC"
    assert embed.height == 152
    assert "allow=" in embed.to_html()


def test_soundcloud_url_is_quoted():
    embed = render_embed(MusicProvider.soundcloud, "https://soundcloud.com/artist/song-name")
    assert embed.src.startswith("https://w.soundcloud.com/player/?url=")
    assert "https%3A%2F%2Fsoundcloud.com%2Fartist%2Fsong-name" in embed.src


def test_apple_music_keeps_track_selector():
    embed = render_embed(
        MusicProvider.apple_music,
        "https://music.apple.com/us/album/some-album/1440857781?i=1440857793&l=en",
    )
    assert embed.src == "https://embed.music.apple.com/us/album/some-album/1440857781?i=1440857793"


def test_custom_iframe_is_sandboxed_and_escaped():
    embed = render_embed(
        MusicProvider.custom_iframe, 'https://radio.example.com/player?x="><script>', title="<b>"
    )
    html = embed.to_html()
    assert "sandbox=" in html
    assert "<script>" not in html
    assert "&lt;b&gt;" in html


@pytest.mark.parametrize(
    ("provider", "url"),
    [
        (MusicProvider.spotify, "http://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC"),
        (MusicProvider.spotify, "https://evil.example.com/track/4uLU6hMCjMI75M1A2tKUQC"),
        (MusicProvider.spotify, "https://open.spotify.com/user/someone"),
        (MusicProvider.soundcloud, "https://soundcloud.com.evil.net/a/b"),
        (MusicProvider.apple_music, "https://music.apple.com/album/123"),
        (MusicProvider.custom_iframe, "javascript:alert(1)"),
        (MusicProvider.custom_iframe, "https://user:pw@example.com/"),
    ],
)
def test_rejected_urls(provider, url):
    with pytest.raises(ValidationError) as exc_info:
        validate_source_url(provider, url)
    assert exc_info.value.code == 400701

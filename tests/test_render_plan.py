"""Tests for the single-pass ffmpeg render plan."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from clipcraft.models import Clip, ProcessingConfig, TimedLine, VideoLayout
from clipcraft.services.caption_styles import BOLD, MINIMAL
from clipcraft.services.render_plan import (
    build_render_plan,
    caption_force_style,
    clip_relative_lines,
    escape_filter_text,
    to_ass_color,
)

SOURCE = Path("/videos/talk.mp4")
FONT = Path("/fonts/Inter-Bold.ttf")

_WHITESPACE = " \n\t\r"


def _get_token(text: str, pos: int, terms: str) -> tuple[str, int]:
    """Read one token the way ffmpeg's av_get_token does: backslash escapes, quotes, trailing blanks."""
    out: list[str] = []
    keep = 0
    while pos < len(text) and text[pos] in _WHITESPACE:
        pos += 1
    while pos < len(text) and text[pos] not in terms:
        ch = text[pos]
        pos += 1
        if ch == "\\" and pos < len(text):
            out.append(text[pos])
            pos += 1
            keep = len(out)
        elif ch == "'":
            while pos < len(text) and text[pos] != "'":
                out.append(text[pos])
                pos += 1
            pos += 1
            keep = len(out)
        else:
            out.append(ch)
    token = "".join(out)
    return token[:keep] + token[keep:].rstrip(_WHITESPACE), pos


def _chain_filters(graph: str) -> list[str]:
    """Split the [0:v]...[v] chain into filter descriptions after graph-level unescaping."""
    assert graph.startswith("[0:v]")
    pos = len("[0:v]")
    filters: list[str] = []
    while True:
        token, pos = _get_token(graph, pos, "[],;")
        filters.append(token)
        if pos < len(graph) and graph[pos] == ",":
            pos += 1
            continue
        break
    assert graph[pos:].startswith("[v]")
    return filters


def _options(description: str) -> tuple[str, dict[str, str]]:
    """Split a filter description into its name and option values, unescaped at option level."""
    name, _, args = description.partition("=")
    options: dict[str, str] = {}
    pos = 0
    while pos < len(args):
        eq = args.index("=", pos)
        key = args[pos:eq]
        value, pos = _get_token(args, eq + 1, ":")
        options[key] = value
        pos += 1
    return name, options


def _drawn_texts(plan) -> list[str]:
    """Text each drawtext filter will actually render."""
    texts = []
    for description in _chain_filters(plan.filter_complex):
        if description.startswith("drawtext="):
            _, options = _options(description)
            texts.append(re.sub(r"\\(.)", r"\1", options["text"]))
    return texts


def _clip(hook: str = "You won't believe this", style=BOLD) -> Clip:
    return Clip(
        id="clip-test",
        start_time=30.0,
        end_time=75.0,
        hook=hook,
        transcript=[
            TimedLine(text="first", start=30.0, end=35.5),
            TimedLine(text="second", start=36.0, end=80.0),
        ],
        caption_style=style,
    )


@pytest.fixture
def watermark(tmp_path: Path) -> Path:
    path = tmp_path / "logo.png"
    path.write_bytes(b"png")
    return path


@pytest.fixture
def music(tmp_path: Path) -> Path:
    path = tmp_path / "bed.mp3"
    path.write_bytes(b"mp3")
    return path


def test_square_layout_crops_then_scales_to_1080_square() -> None:
    """square -> crop=ih:ih then scale=1080:1080, ahead of captions."""
    plan = build_render_plan(_clip(), ProcessingConfig(layout=VideoLayout.SQUARE), source_path=SOURCE, font_path=FONT)

    assert plan.video_filters[0] == "crop=ih:ih"
    assert plan.video_filters[1] == "scale=1080:1080"
    assert plan.video_filters[2].startswith("subtitles=subtitles.srt")


def test_fill_layout_crops_to_portrait() -> None:
    """fill -> crop=ih*9/16:ih then scale=1080:1920."""
    plan = build_render_plan(_clip(), ProcessingConfig(layout=VideoLayout.FILL), source_path=SOURCE, font_path=FONT)

    assert plan.video_filters[:2] == ("crop=ih*9/16:ih", "scale=1080:1920")


@pytest.mark.parametrize("layout", [VideoLayout.FIT, VideoLayout.AUTO])
def test_fit_and_auto_only_scale(layout: VideoLayout) -> None:
    """fit/auto never crop."""
    plan = build_render_plan(_clip(), ProcessingConfig(layout=layout), source_path=SOURCE, font_path=FONT)

    assert plan.video_filters[0] == "scale=1080:1920"
    assert not any(f.startswith("crop=") for f in plan.video_filters)


def test_trim_is_an_input_option_of_the_source() -> None:
    """-ss/-t come right before the source input so filters see trimmed time."""
    plan = build_render_plan(_clip(), ProcessingConfig(), source_path=SOURCE, font_path=FONT)
    args = plan.to_args()

    index = args.index("input.mp4")
    assert args[index - 5 : index + 1] == ["-ss", "30.000", "-t", "45.000", "-i", "input.mp4"]
    assert args[-1] == "output.mp4"
    assert args[args.index("-preset") + 1] == "veryfast"
    assert args[args.index("-pix_fmt") + 1] == "yuv420p"


def test_hook_and_cta_are_drawn_at_fixed_heights() -> None:
    """Hook at 20% height (size 80), call to action at 80% (size 60, boxed)."""
    plan = build_render_plan(_clip(), ProcessingConfig(), source_path=SOURCE, font_path=FONT)

    hook, cta = [f for f in plan.video_filters if f.startswith("drawtext=")]
    assert "y=(h*0.2)" in hook and "fontsize=80" in hook
    assert "y=(h*0.8)" in cta and "fontsize=60" in cta and "box=1" in cta
    assert "Take a look at my other videos" in cta


def test_blank_cta_text_omits_the_overlay() -> None:
    """call_to_action on with whitespace text draws nothing."""
    config = ProcessingConfig(call_to_action=True, cta_text="   ")

    plan = build_render_plan(_clip(), config, source_path=SOURCE, font_path=FONT)

    assert not any("h*0.8" in f for f in plan.video_filters)


def test_hook_title_toggle_and_empty_hook() -> None:
    """No hook overlay when disabled or when the hook is blank."""
    off = build_render_plan(_clip(), ProcessingConfig(hook_title=False), source_path=SOURCE, font_path=FONT)
    blank = build_render_plan(_clip(hook=" "), ProcessingConfig(), source_path=SOURCE, font_path=FONT)

    assert not any("h*0.2" in f for f in off.video_filters)
    assert not any("h*0.2" in f for f in blank.video_filters)


def test_without_extras_maps_chain_output_and_source_audio() -> None:
    """Single input; video from [v], audio straight from the source."""
    plan = build_render_plan(_clip(), ProcessingConfig(), source_path=SOURCE, font_path=FONT)

    assert [spec.name for spec in plan.inputs] == ["input.mp4"]
    assert plan.video_map == "[v]"
    assert plan.audio_map == "0:a?"
    assert "amix" not in plan.filter_complex


def test_watermark_is_input_one_and_overlaid_bottom_right(watermark: Path) -> None:
    """Watermark scaled to 200px wide, 20px from the bottom-right corner."""
    config = ProcessingConfig(watermark_path=watermark)

    plan = build_render_plan(_clip(), config, source_path=SOURCE, font_path=FONT)

    assert [spec.name for spec in plan.inputs] == ["input.mp4", "watermark.png"]
    assert "[1:v]scale=200:-1[wm];[v][wm]overlay=W-w-20:H-h-20[v_wm]" in plan.filter_complex
    assert plan.video_map == "[v_wm]"


def test_music_is_last_input_and_mixed_under_source(watermark: Path, music: Path) -> None:
    """With a watermark the music is input 2, mixed 0.8/0.2 for the source's duration."""
    config = ProcessingConfig(watermark_path=watermark, background_music=True, background_music_path=music)

    plan = build_render_plan(_clip(), config, source_path=SOURCE, font_path=FONT)

    assert [spec.name for spec in plan.inputs] == ["input.mp4", "watermark.png", "music.mp3"]
    assert (
        "[0:a]volume=0.8[a0];[2:a]volume=0.2[a1];[a0][a1]amix=inputs=2:duration=first[a_mix]"
        in plan.filter_complex
    )
    assert plan.audio_map == "[a_mix]"


def test_music_without_watermark_is_input_one(music: Path) -> None:
    """Music index follows the inputs actually present."""
    config = ProcessingConfig(background_music=True, background_music_path=music)

    plan = build_render_plan(_clip(), config, source_path=SOURCE, font_path=FONT)

    assert "[1:a]volume=0.2[a1]" in plan.filter_complex


def test_silent_source_with_music_uses_the_bed_alone(music: Path) -> None:
    """No source audio to mix: the track is cut to the clip length and mapped directly."""
    config = ProcessingConfig(background_music=True, background_music_path=music)

    plan = build_render_plan(_clip(), config, source_path=SOURCE, font_path=FONT, source_has_audio=False)

    assert "[0:a]" not in plan.filter_complex
    assert plan.filter_complex.endswith(";[1:a]volume=0.2,atrim=duration=45.000[a_mix]")
    assert plan.audio_map == "[a_mix]"


def test_music_file_without_toggle_is_ignored(music: Path) -> None:
    """An uploaded track is not mixed unless background music is enabled."""
    config = ProcessingConfig(background_music=False, background_music_path=music)

    plan = build_render_plan(_clip(), config, source_path=SOURCE, font_path=FONT)

    assert len(plan.inputs) == 1
    assert plan.audio_map == "0:a?"


def test_staged_files_cover_inputs_subtitles_and_font(watermark: Path) -> None:
    """The runner gets every name the command line refers to."""
    plan = build_render_plan(_clip(), ProcessingConfig(watermark_path=watermark), source_path=SOURCE, font_path=FONT)

    staged = {f.name: f for f in plan.staged_files}
    assert set(staged) == {"input.mp4", "watermark.png", "subtitles.srt", "font.ttf"}
    assert staged["input.mp4"].source == SOURCE
    assert staged["font.ttf"].source == FONT
    srt = staged["subtitles.srt"].content.decode("utf-8")
    assert srt.startswith("1\n00:00:00,000 --> 00:00:05,500\nfirst\n")


def test_subtitle_times_are_relative_and_clamped_to_the_clip() -> None:
    """Lines shift to clip time and never run past the clip end."""
    lines = clip_relative_lines(_clip())

    assert [(line.start, line.end) for line in lines] == [(0.0, 5.5), (6.0, 45.0)]


def test_empty_clip_range_is_rejected() -> None:
    """A clip must have positive duration."""
    clip = Clip(start_time=10, end_time=10, hook="", caption_style=BOLD)

    with pytest.raises(ValueError):
        build_render_plan(clip, ProcessingConfig(), source_path=SOURCE, font_path=FONT)


def test_ass_color_reverses_channels() -> None:
    """#RRGGBB becomes &HBBGGRR."""
    assert to_ass_color("#FF8800") == "&H0088FF"
    assert to_ass_color("#fff") == "&HFFFFFF"
    with pytest.raises(ValueError):
        to_ass_color("rgba(0,0,0,0)")


def test_outline_is_black_only_with_a_text_shadow() -> None:
    """Shadowed styles get a black outline, others reuse the text colour."""
    shadowed = caption_force_style(_clip(style=BOLD))
    flat = caption_force_style(_clip(style=MINIMAL))

    assert "PrimaryColour=&H00FFFF" in shadowed
    assert "OutlineColour=&H000000" in shadowed
    assert "OutlineColour=&HFFFFFF" in flat
    assert "FontSize=64" in flat and "Alignment=2" in flat


def test_caption_font_name_follows_the_staged_font() -> None:
    """The family read from the resolved font file replaces the template's font name."""
    plan = build_render_plan(
        _clip(), ProcessingConfig(), source_path=SOURCE, font_path=FONT, font_family="DejaVu Sans"
    )

    assert "FontName=DejaVu Sans," in plan.video_filters[1]
    assert f"FontName={BOLD.font}," in caption_force_style(_clip(style=BOLD))
    assert "FontName=Odd Font," in caption_force_style(_clip(), "Odd, Font'")


@pytest.mark.parametrize(
    "hook",
    [
        "It's a secret",
        "You won't believe this",
        "50%: it's, [really]; done\\",
        "Ceci n'est pas une pipe: 100%",
    ],
)
def test_hook_text_survives_filtergraph_parsing(hook: str) -> None:
    """Quotes and filtergraph metacharacters come out of ffmpeg's parsers intact; the CTA stays its own filter."""
    plan = build_render_plan(_clip(hook=hook), ProcessingConfig(), source_path=SOURCE, font_path=FONT)

    assert _drawn_texts(plan) == [hook, "Take a look at my other videos"]


def test_cta_text_with_apostrophe_is_drawn_verbatim() -> None:
    config = ProcessingConfig(cta_text="Don't miss part 2: link's below")

    plan = build_render_plan(_clip(), config, source_path=SOURCE, font_path=FONT)

    assert _drawn_texts(plan) == ["You won't believe this", "Don't miss part 2: link's below"]


def test_escape_filter_text_folds_newlines() -> None:
    """Multi-line hooks render on one line."""
    plan = build_render_plan(_clip(hook="two\nlines"), ProcessingConfig(), source_path=SOURCE, font_path=FONT)

    assert _drawn_texts(plan)[0] == "two lines"
    assert "\n" not in escape_filter_text("a\r\nb")

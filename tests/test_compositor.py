"""Tests for the composition driver."""

import weakref

import numpy as np
import pytest
from moviepy import AudioClip, VideoClip

from scenereel.editor import audio as audio_module
from scenereel.editor import compositor as compositor_module
from scenereel.editor.audio import AudioFeatures
from scenereel.editor.compositor import (
    GENERATING_TEXT,
    IN_FLIGHT_PER_WORKER,
    UNAVAILABLE_TEXT,
    WAITING_TEXT,
    Composition,
    CompositionStatus,
    RenderJob,
    RenderState,
    export,
    to_video_clip,
)
from scenereel.models import CameraMovement, Manifest, ProjectSettings, TransitionType


@pytest.fixture
def settings():
    return ProjectSettings(
        aspectRatio="1:1",
        transitions={"type": "fadein"},
        cameraMovements=["zoom_in", "pan_left"],
        captions={"animation": "typewriter", "fontSize": "small"},
    )


@pytest.fixture
def three_scenes(make_scene, image_file):
    return [
        make_scene(0, 3.0, media_ref=str(image_file)),
        make_scene(1, 2.5, media_ref=str(image_file)),
        make_scene(2, 4.2, media_ref=str(image_file)),
    ]


class TestCompositionBasics:
    """Tests for timeline-derived composition properties."""

    def test_total_frames_and_size(self, three_scenes, settings):
        composition = Composition(three_scenes, settings)
        assert composition.total_frames == 291
        assert composition.size == (1080, 1080)

    def test_size_follows_aspect_ratio(self, three_scenes):
        portrait = Composition(three_scenes, ProjectSettings(aspectRatio="9:16"))
        assert portrait.size == (1080, 1920)

    def test_status_ok(self, three_scenes, settings):
        assert Composition(three_scenes, settings).status == CompositionStatus.OK

    def test_frame_index_clamped(self, three_scenes, settings):
        composition = Composition(three_scenes, settings)
        assert composition.plan_frame(-5).global_frame == 0
        assert composition.plan_frame(10_000).global_frame == 290


class TestEmptyComposition:
    """Tests for the no-content fallback."""

    def test_placeholder(self):
        composition = Composition([])
        assert composition.total_frames == 150
        assert composition.status == CompositionStatus.NO_CONTENT

        plan = composition.plan_frame(0)
        assert plan.scene_id is None
        assert plan.placeholder == WAITING_TEXT

        pixels = composition.render_frame(75)
        assert pixels.shape == (1080, 1920, 3)
        assert pixels.dtype == np.uint8
        assert pixels.any()


class TestFramePlan:
    """Tests for per-frame effect resolution."""

    def test_scene_and_local_frame(self, three_scenes, settings):
        composition = Composition(three_scenes, settings)
        plan = composition.plan_frame(100)
        assert plan.scene_id == "scene_1"
        assert plan.local_frame == 10

    def test_camera_round_robin(self, three_scenes, settings):
        composition = Composition(three_scenes, settings)
        assert composition.plan_frame(45).camera.translate_x == 0
        assert composition.plan_frame(90 + 37).camera.scale == 1.15
        assert composition.plan_frame(165 + 63).camera.translate_x == 0

    def test_transition_restarts_each_scene(self, three_scenes, settings):
        composition = Composition(three_scenes, settings)
        assert composition.plan_frame(0).transition.opacity == 0
        assert composition.plan_frame(90).transition.opacity == 0
        assert composition.plan_frame(95).transition.opacity == pytest.approx(5 / 9)
        assert composition.plan_frame(100).transition.is_identity

    def test_caption_uses_local_frame(self, three_scenes, settings):
        composition = Composition(three_scenes, settings)
        assert composition.plan_frame(90).caption.text == ""
        assert composition.plan_frame(164).caption.text == three_scenes[1].text

    def test_captions_disabled(self, three_scenes):
        settings = ProjectSettings(captions={"enabled": False})
        assert Composition(three_scenes, settings).plan_frame(10).caption is None

    def test_no_waveform_without_audio(self, three_scenes):
        settings = ProjectSettings(audioWave={"enabled": True})
        assert Composition(three_scenes, settings).plan_frame(10).waveform is None


class TestDeterminism:
    """Frames depend only on their index."""

    def test_replay_identical(self, three_scenes, settings):
        composition = Composition(three_scenes, settings)
        first = composition.render_frame(100)
        second = composition.render_frame(100)
        assert np.array_equal(first, second)
        assert composition.plan_frame(100) == composition.plan_frame(100)

    def test_random_access_matches_sequential(self, three_scenes, settings):
        sequential = Composition(three_scenes, settings)
        for index in range(0, 6):
            sequential.render_frame(index)
        expected = sequential.render_frame(6)

        seeking = Composition(three_scenes, settings)
        seeking.render_frame(250)
        assert np.array_equal(seeking.render_frame(6), expected)


class TestDegradedRendering:
    """Bad scenes degrade to placeholders instead of failing the render."""

    def test_missing_media_file(self, make_scene, image_file, settings):
        scenes = [
            make_scene(0, 1.0, media_ref=str(image_file)),
            make_scene(1, 1.0, media_ref="/nonexistent/missing.png"),
        ]
        composition = Composition(scenes, settings)

        assert composition.status == CompositionStatus.DEGRADED
        assert "scene_1" in composition.failures
        assert composition.plan_frame(40).placeholder == UNAVAILABLE_TEXT
        assert composition.render_frame(40).shape == (1080, 1080, 3)

    def test_every_scene_failed(self, make_scene, settings):
        scenes = [make_scene(0, 1.0, media_ref="/nonexistent/missing.png")]
        assert Composition(scenes, settings).status == CompositionStatus.FAILED

    def test_media_not_generated_yet(self, make_scene, settings):
        composition = Composition([make_scene(0, 1.0)], settings)
        assert composition.status == CompositionStatus.OK
        assert composition.plan_frame(5).placeholder == GENERATING_TEXT
        assert composition.render_frame(5).any()

    def test_invalid_duration_skipped(self, make_scene, image_file, settings):
        scenes = [
            make_scene(0, 1.0, media_ref=str(image_file)),
            make_scene(1, 0.0, media_ref=str(image_file)),
        ]
        composition = Composition(scenes, settings)
        assert composition.total_frames == 30
        assert composition.status == CompositionStatus.DEGRADED

    def test_infinite_duration_from_manifest(self, image_file, tmp_path):
        script = tmp_path / "manifest.yaml"
        script.write_text(
            "project_name: Endless\n"
            "scenes:\n"
            f"  - {{id: a, order_index: 0, duration: 1.0, image_url: '{image_file}'}}\n"
            f"  - {{id: b, order_index: 1, duration: .inf, image_url: '{image_file}'}}\n"
        )
        manifest = Manifest.from_yaml(script)
        composition = Composition(manifest.ready_scenes(), manifest.settings)

        assert composition.total_frames == 30
        assert [scene.id for scene in composition.timeline.skipped] == ["b"]
        assert composition.status == CompositionStatus.DEGRADED

    def test_audio_failure_drops_waveform(self, make_scene, image_file):
        settings = ProjectSettings(audioWave={"enabled": True})
        scenes = [make_scene(0, 1.0, media_ref=str(image_file), audio_ref="/nonexistent/a.mp3")]
        composition = Composition(scenes, settings)

        assert composition.plan_frame(3).waveform is None
        assert composition.status == CompositionStatus.DEGRADED


class TestWaveformLayer:
    """Tests for audio-reactive frames with decoded features."""

    @pytest.fixture
    def fake_features(self, monkeypatch):
        calls = []
        rate = 8000
        t = np.arange(rate) / rate
        features = AudioFeatures.from_samples(0.5 * np.sin(2 * np.pi * 300 * t), rate)

        def loader(path, fps=30):
            calls.append(path)
            return features

        monkeypatch.setattr(compositor_module, "load_audio_features", loader)
        return calls

    def test_waveform_planned_and_cached(self, make_scene, image_file, tmp_path, fake_features):
        audio = tmp_path / "narration.mp3"
        audio.write_bytes(b"stub")
        scenes = [
            make_scene(0, 1.0, media_ref=str(image_file), audio_ref=str(audio)),
            make_scene(1, 1.0, media_ref=str(image_file), audio_ref=str(audio)),
        ]
        settings = ProjectSettings(audioWave={"enabled": True, "position": "center"})
        composition = Composition(scenes, settings)

        plan = composition.plan_frame(10)
        assert plan.waveform is not None
        assert len(plan.waveform.bars) == 100
        assert plan.waveform.offset == pytest.approx(540)
        assert len(fake_features) == 1
        assert composition.render_frame(10).shape == (1080, 1920, 3)


class TestRenderJob:
    """Tests for the render job state machine."""

    def test_states(self, three_scenes, settings):
        job = RenderJob(Composition(three_scenes, settings), start=88, end=92)
        assert job.state == RenderState.NOT_STARTED

        frames = {}
        rendered = job.run(lambda index, pixels: frames.__setitem__(index, pixels))

        assert job.state == RenderState.COMPLETE
        assert rendered == job.frame_count == 4
        assert sorted(frames) == [88, 89, 90, 91]

    def test_parallel_matches_sequential(self, three_scenes, settings):
        composition = Composition(three_scenes, settings)
        sequential, parallel = {}, {}
        RenderJob(composition, 0, 4).run(lambda i, p: sequential.__setitem__(i, p))
        RenderJob(composition, 0, 4).run(lambda i, p: parallel.__setitem__(i, p), parallel=3)

        assert sorted(parallel) == sorted(sequential)
        for index, pixels in sequential.items():
            assert np.array_equal(parallel[index], pixels)

    @pytest.mark.parametrize("start,end", [(-1, 5), (5, 5), (0, 292)])
    def test_invalid_range(self, three_scenes, settings, start, end):
        with pytest.raises(ValueError):
            RenderJob(Composition(three_scenes, settings), start, end)

    def test_frames_generator(self, make_scene, settings):
        job = RenderJob(Composition([make_scene(0, 0.09)], settings))
        indices = [index for index, _ in job.frames()]
        assert indices == [0, 1, 2]
        assert job.state == RenderState.COMPLETE

    def test_parallel_keeps_few_frames_alive(self, three_scenes, settings, monkeypatch):
        """Frames already handed to the sink are released while the job runs."""
        composition = Composition(three_scenes, settings)
        issued = []

        def render_frame(index):
            pixels = np.full((4, 4, 3), index % 256, dtype=np.uint8)
            issued.append(weakref.ref(pixels))
            return pixels

        monkeypatch.setattr(composition, "render_frame", render_frame)

        alive = []

        def sink(index, pixels):
            alive.append(sum(1 for ref in list(issued) if ref() is not None))

        parallel = 2
        rendered = RenderJob(composition, 0, 30).run(sink, parallel=parallel)

        assert rendered == 30
        assert len(issued) == 30
        # Workers may briefly hold the item they just finished
        assert max(alive) <= (IN_FLIGHT_PER_WORKER + 1) * parallel


class TestNarration:
    """Tests for narration placement on the global timeline."""

    @pytest.fixture
    def narration_file(self, tmp_path):
        path = tmp_path / "narration.mp3"
        path.write_bytes(b"stub")
        return path

    def test_tracks_start_at_window_start(self, three_scenes, narration_file):
        scenes = [
            scene.model_copy(update={"audio_ref": str(narration_file)})
            for scene in three_scenes
        ]
        tracks = Composition(scenes).narration_tracks()

        assert [path for path, _, _ in tracks] == [narration_file] * 3
        assert [start for _, start, _ in tracks] == pytest.approx([0.0, 3.0, 5.5])
        assert [limit for _, _, limit in tracks] == pytest.approx([3.0, 2.5, 4.2])

    def test_missing_narration_omitted(self, make_scene, narration_file):
        scenes = [
            make_scene(0, 1.0, audio_ref="/nonexistent/first.mp3"),
            make_scene(1, 1.0),
            make_scene(2, 1.0, audio_ref=str(narration_file)),
        ]
        assert Composition(scenes).narration_tracks() == [(narration_file, 2.0, 1.0)]


class TestVideoClip:
    """Tests for handing a composition to moviepy."""

    def test_time_maps_to_frame(self, three_scenes, settings):
        composition = Composition(three_scenes, settings)
        clip = to_video_clip(composition)

        assert clip.audio is None
        assert clip.duration == pytest.approx(291 / 30)
        for seconds, index in [(0.0, 0), (1.5, 45), (3.5, 105), (9.69, 290)]:
            assert np.array_equal(clip.get_frame(seconds), composition.render_frame(index))

    def test_export_closes_narration(self, make_scene, image_file, tmp_path, monkeypatch):
        narration = tmp_path / "narration.mp3"
        narration.write_bytes(b"stub")
        closed = []

        class TrackedAudio(AudioClip):
            def close(self):
                closed.append(self)

        monkeypatch.setattr(
            audio_module,
            "load_audio",
            lambda path: TrackedAudio(lambda t: 0.0 * t, duration=5.0, fps=8000),
        )

        written = {}

        def write_videofile(clip, filename, **params):
            written.update(params, filename=filename, audio=clip.audio)

        monkeypatch.setattr(VideoClip, "write_videofile", write_videofile)

        scenes = [
            make_scene(0, 3.0, media_ref=str(image_file), audio_ref=str(narration)),
            make_scene(1, 2.5, media_ref=str(image_file), audio_ref=str(narration)),
        ]
        output = tmp_path / "out" / "final.mp4"
        result = export(Composition(scenes), output, preset="ultrafast")

        assert result == output
        assert output.parent.is_dir()
        assert written["filename"] == str(output)
        assert written["fps"] == 30
        assert written["preset"] == "ultrafast"
        assert "bitrate" not in written
        assert written["audio"].duration == pytest.approx(5.5)
        assert len(closed) == 2


class TestSettingsIntegration:
    def test_unknown_transition_renders_plainly(self, three_scenes):
        settings = ProjectSettings(transitions={"type": "spiral_wipe"})
        assert settings.transitions.type == TransitionType.NONE
        assert Composition(three_scenes, settings).plan_frame(0).transition.is_identity

    def test_static_camera(self, three_scenes):
        settings = ProjectSettings(cameraMovements=[CameraMovement.STATIC])
        plan = Composition(three_scenes, settings).plan_frame(50)
        assert plan.camera.scale == 1.0

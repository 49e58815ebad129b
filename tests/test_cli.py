"""Tests for the command line adapter."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from contentgen.api import cli
from contentgen.core.engine import Orchestrator
from contentgen.core.outcomes import Modality, ProviderUnavailable

from conftest import image_success


class TestRunLocal:

    @pytest.mark.asyncio
    async def test_prints_each_modality(self, config, fake_adapters, capsys):
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        code = await cli.run_local("Lamp", "bold", orchestrator=orchestrator)

        lines = capsys.readouterr().out.strip().splitlines()
        assert code == 0
        assert len(lines) == 3
        assert {line.split("]")[0] + "]" for line in lines} == {"[text]", "[image]", "[audio]"}

    @pytest.mark.asyncio
    async def test_fallback_is_marked(self, config, fake_adapters, capsys):
        fake_adapters[Modality.TEXT].outcome = ProviderUnavailable("x")
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        await cli.run_local("Lamp", "bold", orchestrator=orchestrator)

        out = capsys.readouterr().out
        assert "[text] (fallback) Revolutionary Lamp Changes Everything" in out

    @pytest.mark.asyncio
    async def test_audio_fallback_shows_browser_speech(self, config, fake_adapters, capsys):
        fake_adapters[Modality.AUDIO].outcome = ProviderUnavailable("x")
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        await cli.run_local("Lamp", "bold", orchestrator=orchestrator)

        audio_line = next(line for line in capsys.readouterr().out.splitlines() if line.startswith("[audio]"))
        assert audio_line.startswith("[audio] (fallback) browser speech (")

    @pytest.mark.asyncio
    async def test_regenerate_reports_changed_fields(self, config, fake_adapters, capsys):
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        results = iter([image_success(), image_success("https://images.example.com/v2.png")])

        async def next_image(*args, **kwargs):
            return next(results)

        fake_adapters[Modality.IMAGE].generate = next_image

        await cli.run_local("Lamp", "bold", regenerate="image", orchestrator=orchestrator)

        out = capsys.readouterr().out.strip().splitlines()
        assert out[-1] == "changed: imageURL"

    @pytest.mark.asyncio
    async def test_json_output(self, config, fake_adapters, capsys):
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        await cli.run_local("Lamp", "serious", as_json=True, orchestrator=orchestrator)

        events = [json.loads(line) for line in capsys.readouterr().out.strip().splitlines()]
        assert {e["modality"] for e in events} == {"text", "image", "audio"}


class TestRunRemote:

    def _stream_response(self, lines):
        response = MagicMock()
        response.__enter__.return_value = response
        response.iter_lines.return_value = iter(lines)
        return response

    def test_streams_events(self, capsys):
        lines = [
            'data: {"modality": "text", "headline": "H", "caption": "C", "fallback": false}',
            "",
            'data: {"done": true, "result": {"headline": "H"}}',
            "data: [DONE]",
        ]
        with patch("contentgen.api.cli.requests.post", return_value=self._stream_response(lines)) as post:
            code = cli.run_remote("http://localhost:3001/", "Lamp", "bold")

        assert code == 0
        assert post.call_args.args[0] == "http://localhost:3001/api/generate"
        assert capsys.readouterr().out.strip() == "[text] H | C"

    def test_regenerate_audio_sends_caption(self, capsys):
        lines = [
            'data: {"done": true, "result": {"caption": "Sip smarter.", "audioURL": "a"}}',
            "data: [DONE]",
        ]
        regenerated = MagicMock()
        regenerated.json.return_value = {"audioURL": "b", "duration": 1}

        with patch(
            "contentgen.api.cli.requests.post",
            side_effect=[self._stream_response(lines), regenerated],
        ) as post:
            cli.run_remote("http://localhost:3001", "Lamp", "bold", regenerate="audio")

        url, = post.call_args.args
        assert url == "http://localhost:3001/api/generate-audio"
        assert post.call_args.kwargs["json"] == {"text": "Sip smarter.", "tone": "bold"}
        assert "changed: audioURL, duration" in capsys.readouterr().out

    def test_request_failure_exits_nonzero(self, capsys):
        with patch(
            "contentgen.api.cli.requests.post",
            side_effect=requests.exceptions.ConnectionError("refused"),
        ):
            code = cli.run_remote("http://localhost:3001", "Lamp", "bold")

        assert code == 1
        assert "API request failed" in capsys.readouterr().err


class TestMain:

    def test_blank_prompt_is_rejected(self):
        with pytest.raises(SystemExit) as exc:
            cli.main(["generate", "   "])
        assert exc.value.code == 2

    def test_unknown_regenerate_modality_is_rejected(self):
        with pytest.raises(SystemExit):
            cli.main(["generate", "Lamp", "--regenerate", "video"])

    def test_server_mode_dispatch(self):
        with patch("contentgen.api.cli.run_remote", return_value=0) as run_remote:
            code = cli.main(["generate", "Lamp", "--tone", "serious", "--server", "http://h:1", "--json"])

        assert code == 0
        run_remote.assert_called_once_with("http://h:1", "Lamp", "serious", None, True)

    def test_serve_dispatch(self):
        with patch("contentgen.api.cli.serve", return_value=0) as serve:
            cli.main(["serve", "--host", "0.0.0.0", "--port", "8000"])

        serve.assert_called_once_with("0.0.0.0", 8000)


class TestChangedFields:

    def test_reports_only_differences(self):
        before = {"headline": "A", "caption": "B"}
        after = {"headline": "A", "caption": "C"}
        assert cli.changed_fields(before, after) == ["caption"]


class TestFormatEvent:

    def test_audio_handle_is_shortened(self):
        event = {"modality": "audio", "audioURL": "data:audio/mpeg;base64," + "A" * 100, "duration": 3, "webSpeech": False}

        assert cli.format_event(event) == f"[audio] data:audio/mpeg;base64,{'A' * 17}... (3s)"

    def test_web_speech_audio(self):
        event = {"modality": "audio", "audioURL": "web-speech-ready", "duration": 2, "webSpeech": True, "fallback": True}

        assert cli.format_event(event) == "[audio] (fallback) browser speech (2s)"

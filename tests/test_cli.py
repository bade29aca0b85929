"""Tests for the command-line entrypoint."""

from unittest.mock import patch

from conftest import make_config
from imageproxy.api import cli
from imageproxy.core.types import ProxyResponse


def run(argv, config, dispatch):
    with patch.object(cli.ProxyConfig, "from_env", return_value=config), patch.object(
        cli.routes, "dispatch", side_effect=dispatch
    ), patch.object(cli, "configure_logging"):
        return cli.main(argv)


def test_expand_prints_prompt(capsys):
    def dispatch(path, body, config):
        assert body == {"text": "a cat"}
        return ProxyResponse(200, {"prompt": "a vivid cat"})

    assert run(["expand", "a cat"], make_config(), dispatch) == 0
    assert capsys.readouterr().out.strip() == "a vivid cat"


def test_generate_writes_file(tmp_path, png_bytes, capsys):
    out = tmp_path / "cat.png"
    responses = {
        "/api/generate-prompt": ProxyResponse(200, {"prompt": "a vivid cat"}),
        "/api/generate-image": ProxyResponse(200, png_bytes, media_type="image/png"),
    }

    code = run(["generate", "a cat", "--out", str(out)], make_config(), lambda path, body, config: responses[path])

    assert code == 0
    assert out.read_bytes() == png_bytes
    assert "Prompt: a vivid cat" in capsys.readouterr().out


def test_generate_error_exit_code(capsys):
    def dispatch(path, body, config):
        return ProxyResponse(500, {"error": "No image generation API key configured."})

    code = run(["generate", "a cat", "--no-expand"], make_config(), dispatch)

    assert code == 1
    assert "No image generation API key configured." in capsys.readouterr().err


def test_remote_mode_uses_api_url(png_bytes):
    config = make_config(api_base_url="https://proxy.example")
    with patch.object(cli, "call_remote", return_value=ProxyResponse(200, {"prompt": "p"})) as remote:
        prompt, failure = cli.expand(config, "a cat")
    assert (prompt, failure) == ("p", None)
    remote.assert_called_once_with("https://proxy.example", "/api/generate-prompt", {"text": "a cat"}, config.request_timeout)

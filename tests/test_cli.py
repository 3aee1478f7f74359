import pytest

import src.main as cli
from src.cipher.cache import CipherManager

SCRIPT = "/s/player/abc123/base.js"


@pytest.fixture
def patched(monkeypatch, fetcher):
    monkeypatch.setattr(cli, "build_manager", lambda settings: CipherManager(fetcher))
    return fetcher


def test_token(patched, capsys):
    assert cli.main(["--script", SCRIPT, "--token", "ABCDEF"]) == 0
    assert capsys.readouterr().out.strip() == "ACBD"


def test_playback_url(patched, capsys):
    assert cli.main(["--script", SCRIPT, "--url", "https://h/videoplayback?id=1", "--signature", "ABCDEF"]) == 0
    assert capsys.readouterr().out.strip() == "https://h/videoplayback?id=1&ratebypass=yes&signature=ACBD"


def test_manifest(patched, capsys):
    assert cli.main(["--script", SCRIPT, "--manifest", "https://h/dash/s/ABCDEF/x"]) == 0
    assert capsys.readouterr().out.strip() == "https://h/dash/signature/ACBD/x"


def test_error_exit_code(patched, capsys):
    patched.status = 500
    assert cli.main(["--script", SCRIPT, "--token", "ABCDEF"]) == 1
    assert "500" in capsys.readouterr().err


def test_requires_an_action():
    with pytest.raises(SystemExit):
        cli.parse_args(["--script", SCRIPT])

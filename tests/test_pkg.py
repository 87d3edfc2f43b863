import pytest

from dotfiles_bootstrap.lib import pkg
from dotfiles_bootstrap.lib.command import CmdResult


@pytest.fixture
def commands(monkeypatch):
    calls = []
    outputs = {}

    def fake_run(argv, **kw):
        argv = list(argv)
        calls.append(argv)
        stdout, rc = outputs.get(tuple(argv[:3]), ("", 0))
        return CmdResult(argv, rc, stdout, "")

    monkeypatch.setattr(pkg, "run_cmd", fake_run)
    monkeypatch.setattr(pkg, "sudo_prefix", lambda: ["sudo"])
    return calls, outputs


def test_pacman_installed_parses_partial_output(commands):
    calls, outputs = commands
    outputs[("pacman", "-Q", "ripgrep")] = ("ripgrep 14.1.0-1\n", 1)

    assert pkg.Pacman().installed(["ripgrep", "fd"]) == {"ripgrep"}
    assert calls == [["pacman", "-Q", "ripgrep", "fd"]]


def test_pacman_install_uses_sudo_and_needed(commands):
    calls, _ = commands

    pkg.Pacman().install(["fd"])

    assert calls == [["sudo", "pacman", "-S", "--needed", "--noconfirm", "fd"]]


def test_yay_installs_without_sudo(commands):
    calls, _ = commands

    pkg.Yay().install(["brave-bin"])

    assert calls == [["yay", "-S", "--needed", "--noconfirm", "brave-bin"]]


def test_pacman_in_repo(commands):
    _, outputs = commands
    outputs[("pacman", "-Si", "aur-only")] = ("", 1)

    assert pkg.Pacman().in_repo("fd") is True
    assert pkg.Pacman().in_repo("aur-only") is False


def test_brew_installed_checks_formulae_and_casks(commands):
    _, outputs = commands
    outputs[("brew", "list", "--formula")] = ("ripgrep\nfd\n", 0)
    outputs[("brew", "list", "--cask")] = ("kitty\n", 0)

    assert pkg.Homebrew().installed(["fd", "kitty", "zed"]) == {"fd", "kitty"}


def test_detect_prefers_pacman(monkeypatch):
    monkeypatch.setattr(pkg, "have_cmd", lambda name: name in {"pacman", "brew"})

    assert isinstance(pkg.detect_system_manager(), pkg.Pacman)


def test_detect_explicit_brew(monkeypatch):
    monkeypatch.setattr(pkg, "have_cmd", lambda name: name == "brew")

    assert isinstance(pkg.detect_system_manager("brew"), pkg.Homebrew)
    assert pkg.detect_system_manager("pacman") is None


def test_detect_unknown_preference():
    with pytest.raises(ValueError):
        pkg.detect_system_manager("apt")


def test_bootstrap_yay_dry_run(tmp_path, commands):
    calls, _ = commands

    helper = pkg.bootstrap_yay(tmp_path, dry_run=True)

    assert isinstance(helper, pkg.Yay)
    assert calls[1] == ["git", "clone", pkg.YAY_BIN_REPO, str(tmp_path / "yay-bin")]
    assert calls[2][0] == "makepkg"


@pytest.fixture
def dry_commands(monkeypatch):
    """A run_cmd that, like the real one, runs nothing when dry_run is set."""

    calls = []
    listing = {"pacman": "ripgrep 14.1.0-1\n", "brew": "ripgrep\n"}

    def fake_run(argv, dry_run=False, **kw):
        argv = list(argv)
        calls.append((argv, dry_run))
        if dry_run:
            return CmdResult(argv, 0, "", "")
        return CmdResult(argv, 0 if "-Q" not in argv else 1, listing.get(argv[0], ""), "")

    monkeypatch.setattr(pkg, "run_cmd", fake_run)
    monkeypatch.setattr(pkg, "sudo_prefix", lambda: ["sudo"])
    return calls


def test_dry_run_still_queries_installed_packages(dry_commands):
    pacman = pkg.Pacman(dry_run=True)

    assert pacman.installed(["ripgrep", "fd"]) == {"ripgrep"}
    assert pkg.Homebrew(dry_run=True).installed(["ripgrep", "fd"]) == {"ripgrep"}
    assert all(dry_run is False for _, dry_run in dry_commands)


def test_dry_run_only_skips_installs(dry_commands):
    pacman = pkg.Pacman(dry_run=True)

    pacman.install(["fd"])
    pacman.in_repo("fd")

    assert dry_commands == [
        (["sudo", "pacman", "-S", "--needed", "--noconfirm", "fd"], True),
        (["pacman", "-Si", "fd"], False),
    ]

import os

from dotfiles_bootstrap.context import RunContext
from dotfiles_bootstrap.models import ActionStatus, DeployMode, DotfileMapping, PackageSpec
from dotfiles_bootstrap.reconciler import Reconciler

from conftest import write


def test_existing_symlink_is_left_alone(reconciler, tmp_path):
    elsewhere = write(tmp_path / "elsewhere", "x")
    src = write(tmp_path / "repo" / "vimrc", "set nu")
    dest = tmp_path / "home" / ".vimrc"
    dest.parent.mkdir()
    dest.symlink_to(elsewhere)

    result = reconciler.ensure_symlink(src, dest)

    assert result.status is ActionStatus.SATISFIED
    assert os.readlink(dest) == str(elsewhere)


def test_symlink_created_then_satisfied(reconciler, tmp_path):
    src = write(tmp_path / "repo" / "vimrc", "set nu")
    dest = tmp_path / "home" / "nested" / ".vimrc"

    first = reconciler.ensure_symlink(src, dest)
    second = reconciler.ensure_symlink(src, dest)

    assert first.status is ActionStatus.APPLIED
    assert second.status is ActionStatus.SATISFIED
    assert dest.resolve() == src.resolve()


def test_regular_file_without_force_is_skipped(reconciler, ctx, tmp_path):
    src = write(tmp_path / "repo" / "vimrc", "new")
    dest = write(tmp_path / "home" / ".vimrc", "mine")

    result = reconciler.ensure_symlink(src, dest)

    assert result.status is ActionStatus.SKIPPED
    assert dest.read_text() == "mine"
    assert ctx.warnings[0]["kind"] == "DeploymentWarning"


def test_non_interactive_overwrite_prompt_defaults_to_skip(reconciler, ctx, tmp_path):
    src = write(tmp_path / "repo" / "vimrc", "new")
    dest = write(tmp_path / "home" / ".vimrc", "mine")

    result = reconciler.ensure_symlink(src, dest, force=True)

    assert result.status is ActionStatus.SKIPPED
    assert not dest.is_symlink()
    assert dest.read_text() == "mine"
    assert ctx.warnings == [{"kind": "UserDeclinedOverwrite", "message": ctx.warnings[0]["message"]}]
    assert ctx.warnings[0]["message"].startswith("Declined:")


def test_force_flag_replaces_file(tmp_path):
    ctx = RunContext(force=True, interactive=False)
    r = Reconciler(ctx)
    src = write(tmp_path / "repo" / "vimrc", "new")
    dest = write(tmp_path / "home" / ".vimrc", "mine")

    result = r.ensure_symlink(src, dest, force=True)

    assert result.status is ActionStatus.APPLIED
    assert dest.is_symlink()
    assert ctx.warnings == []


def test_append_with_marker_present_leaves_file_byte_identical(reconciler, tmp_path):
    target = tmp_path / ".zshrc"
    target.write_bytes(b"MARK\nold text")

    result = reconciler.ensure_append_block(target, "MARK\nextra text")

    assert result.status is ActionStatus.SATISFIED
    assert target.read_bytes() == b"MARK\nold text"


def test_append_happens_once(reconciler, tmp_path):
    target = write(tmp_path / ".zshrc", "export EDITOR=nvim")

    reconciler.ensure_append_block(target, "source $HOME/.zshconf")
    reconciler.ensure_append_block(target, "source $HOME/.zshconf")

    assert target.read_text() == "export EDITOR=nvim\nsource $HOME/.zshconf\n"


def test_append_skips_leading_blank_lines_for_marker(reconciler, tmp_path):
    target = write(tmp_path / ".zshrc", "# zsh\nalias ll='ls -l'\n")

    result = reconciler.ensure_append_block(target, "\n\nalias ll='ls -l'\nmore")

    assert result.status is ActionStatus.SATISFIED


def test_install_copy_sets_mode_and_is_idempotent(reconciler, tmp_path):
    src = write(tmp_path / "repo" / ".zshconf", "alias g=git\n")
    dest = tmp_path / "home" / ".zshconf"

    first = reconciler.install_copy(src, dest, file_mode=0o600)
    second = reconciler.install_copy(src, dest, file_mode=0o600)

    assert first.status is ActionStatus.APPLIED
    assert second.status is ActionStatus.SATISFIED
    assert dest.read_text() == "alias g=git\n"
    assert dest.stat().st_mode & 0o777 == 0o600


def test_sync_tree_then_satisfied(reconciler, tmp_path):
    src = tmp_path / "repo" / "config"
    write(src / "nvim" / "init.lua", "vim.o.number = true")
    dest = tmp_path / "home" / ".config"

    first = reconciler.sync_tree(src, dest)
    second = reconciler.sync_tree(src, dest)

    assert first.status is ActionStatus.APPLIED
    assert second.status is ActionStatus.SATISFIED
    assert (dest / "nvim" / "init.lua").read_text() == "vim.o.number = true"


def test_dry_run_changes_nothing(tmp_path):
    ctx = RunContext(dry_run=True, interactive=False)
    r = Reconciler(ctx)
    src = write(tmp_path / "repo" / "vimrc", "x")
    dest = tmp_path / "home" / ".vimrc"
    target = write(tmp_path / "home" / ".zshrc", "hi\n")

    assert r.ensure_symlink(src, dest).status is ActionStatus.WOULD_APPLY
    assert r.ensure_append_block(target, "MARK").status is ActionStatus.WOULD_APPLY
    assert r.sync_tree(tmp_path / "repo", tmp_path / "mirror").status is ActionStatus.WOULD_APPLY

    assert not dest.exists()
    assert target.read_text() == "hi\n"
    assert not (tmp_path / "mirror").exists()


def test_deploy_missing_source_is_skipped(reconciler, ctx, tmp_path, home):
    mapping = DotfileMapping(source="nope", target="~/.nope", mode=DeployMode.SYMLINK_IF_ABSENT)

    result = reconciler.deploy(mapping, tmp_path / "repo")

    assert result.status is ActionStatus.SKIPPED
    assert "source not found" in ctx.warnings[0]["message"]


def test_deploy_dispatches_each_mode(reconciler, tmp_path, home):
    root = tmp_path / "repo"
    write(root / "config" / "kitty" / "kitty.conf", "font_size 12")
    write(root / ".zshconf", "alias v=nvim\n")
    write(root / "gitconfig", "[user]\n")
    mappings = [
        DotfileMapping(source="config", target="~/.config", mode=DeployMode.SYNC_TREE),
        DotfileMapping(source=".zshconf", target="~/.zshconf", mode=DeployMode.OVERWRITE_COPY),
        DotfileMapping(source="", target="~/.zshrc", mode=DeployMode.APPEND_BLOCK_IF_MISSING, content="source $HOME/.zshconf"),
        DotfileMapping(source="gitconfig", target="~/.gitconfig", mode=DeployMode.SYMLINK_IF_ABSENT),
    ]

    results = reconciler.reconcile_dotfiles(mappings, root)

    assert [r.status for r in results] == [ActionStatus.APPLIED] * 4
    assert (home / ".config" / "kitty" / "kitty.conf").exists()
    assert (home / ".zshconf").read_text() == "alias v=nvim\n"
    assert (home / ".zshrc").read_text() == "source $HOME/.zshconf\n"
    assert (home / ".gitconfig").is_symlink()


def test_full_reconcile_twice_has_no_side_effects_the_second_time(ctx, system, helper, tmp_path, home):
    root = tmp_path / "repo"
    write(root / "config" / "nvim" / "init.lua", "-- nvim")
    mappings = [
        DotfileMapping(source="config", target="~/.config", mode=DeployMode.SYNC_TREE),
        DotfileMapping(source="", target="~/.zshrc", mode=DeployMode.APPEND_BLOCK_IF_MISSING, content="MARK\nmore"),
    ]
    packages = [PackageSpec("ripgrep"), PackageSpec("fd")]
    r = Reconciler(ctx, system=system, helper=helper)

    r.reconcile(packages, mappings, root)
    zshrc_after_first = (home / ".zshrc").read_bytes()
    installs_after_first = list(system.install_calls)
    second = r.reconcile(packages, mappings, root)

    assert all(x.status is ActionStatus.SATISFIED for x in second)
    assert system.install_calls == installs_after_first
    assert (home / ".zshrc").read_bytes() == zshrc_after_first

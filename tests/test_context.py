from dotfiles_bootstrap.context import RunContext
from dotfiles_bootstrap.errors import DeploymentWarning
from dotfiles_bootstrap.models import RunPhase


def test_warn_records_kind_and_logs(caplog):
    ctx = RunContext(interactive=False)

    ctx.warn(DeploymentWarning("~/.vimrc exists"))
    ctx.warn("plain")

    assert ctx.warnings == [
        {"kind": "DeploymentWarning", "message": "~/.vimrc exists"},
        {"kind": "Warning", "message": "plain"},
    ]
    assert "DeploymentWarning: ~/.vimrc exists" in caplog.text


def test_scratch_removed_on_cleanup():
    ctx = RunContext(interactive=False)
    scratch = ctx.scratch_dir()
    assert scratch.is_dir()
    assert ctx.scratch_dir() == scratch

    ctx.cleanup()

    assert not scratch.exists()


def test_scratch_kept_when_asked():
    ctx = RunContext(interactive=False, keep_scratch=True)
    scratch = ctx.scratch_dir()

    ctx.cleanup()

    assert scratch.exists()
    ctx.keep_scratch = False
    ctx.cleanup()
    assert not scratch.exists()


def test_initial_phase():
    assert RunContext(interactive=False).phase is RunPhase.INIT

from __future__ import annotations

import logging
from typing import Optional

from ..lib import hwdetect
from ..lib.prompt import ask_yes_no
from ..models import ActionStatus, PackageSource, PackageSpec
from ..pipeline import Session

logger = logging.getLogger(__name__)

KERNEL_PACKAGE = "linux-cachyos"


class InstallKernelStep:
    """Optional CachyOS kernel plus an NVIDIA driver matched to the GPU generation."""

    step_id = "70_install_kernel"

    def applies(self, session: Session) -> bool:
        return session.on_pacman and session.config.offer_kernel

    def _pick_driver(self, session: Session, gpu: hwdetect.GpuInfo) -> Optional[str]:
        ctx = session.ctx
        if not gpu.present:
            logger.info("No NVIDIA GPU detected (%s). Skipping NVIDIA driver install.", gpu.model)
            return None
        if gpu.generation == hwdetect.NEWER:
            return hwdetect.DRIVER_PROPRIETARY
        if gpu.generation == hwdetect.OLDER:
            return hwdetect.DRIVER_OPEN
        if gpu.generation == hwdetect.TURING:
            proprietary = ask_yes_no(
                ctx,
                f"Turing GPUs may work with either driver. Install proprietary '{hwdetect.DRIVER_PROPRIETARY}'?",
                default=True,
            )
        else:
            ctx.warn(f"could not infer the generation of NVIDIA device: {gpu.model}", kind="GpuDetection")
            proprietary = ask_yes_no(
                ctx,
                f"Install proprietary '{hwdetect.DRIVER_PROPRIETARY}' instead of '{hwdetect.DRIVER_OPEN}'?",
                default=False,
            )
        return hwdetect.DRIVER_PROPRIETARY if proprietary else hwdetect.DRIVER_OPEN

    def run(self, session: Session) -> None:
        ctx = session.ctx
        if not ask_yes_no(ctx, f"Would you like to install the CachyOS kernel package '{KERNEL_PACKAGE}' now?", default=False):
            logger.info("Skipping CachyOS kernel installation.")
            return

        reconciler = session.reconciler()
        # A failed kernel install is a warning; the driver may still be wanted.
        reconciler.ensure_installed(PackageSpec(KERNEL_PACKAGE, PackageSource.SYSTEM_REPO))

        driver = self._pick_driver(session, hwdetect.detect_nvidia())
        if driver is None:
            return
        result = reconciler.ensure_installed(PackageSpec(driver, PackageSource.SYSTEM_REPO))
        if result.status is ActionStatus.FAILED:
            return

        lib32 = hwdetect.lib32_companion(driver)
        assert session.system is not None
        if session.system.in_repo(lib32) and ask_yes_no(
            ctx, f"Install corresponding lib32 package '{lib32}' for 32-bit compatibility?", default=False
        ):
            reconciler.ensure_installed(PackageSpec(lib32, PackageSource.SYSTEM_REPO))

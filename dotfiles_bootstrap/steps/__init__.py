from .step_10_preflight import PreflightStep
from .step_20_system_update import SystemUpdateStep
from .step_25_sync_repository import SyncRepositoryStep
from .step_30_third_party_repos import ThirdPartyReposStep
from .step_35_install_helper import InstallHelperStep
from .step_40_install_packages import InstallPackagesStep
from .step_50_deploy_dotfiles import DeployDotfilesStep
from .step_60_enable_services import EnableServicesStep
from .step_65_install_flatpaks import InstallFlatpaksStep
from .step_68_change_login_shell import ChangeLoginShellStep
from .step_70_install_kernel import InstallKernelStep
from .step_90_report import ReportStep
from .step_95_offer_reboot import OfferRebootStep

FLOWS = ("install", "update")


def install_steps():
    return [
        PreflightStep(),
        SystemUpdateStep(),
        ThirdPartyReposStep(),
        InstallHelperStep(),
        InstallPackagesStep(),
        DeployDotfilesStep("install"),
        EnableServicesStep(),
        InstallFlatpaksStep(),
        ChangeLoginShellStep(),
        InstallKernelStep(),
        ReportStep(),
        OfferRebootStep(),
    ]


def update_steps():
    return [
        PreflightStep(),
        SystemUpdateStep(),
        SyncRepositoryStep(),
        DeployDotfilesStep("update"),
        InstallPackagesStep(resolve_from_repo=True),
        ReportStep(),
    ]


def build_steps(flow: str):
    if flow == "install":
        return install_steps()
    if flow == "update":
        return update_steps()
    raise ValueError(f"Unknown flow: {flow}")


__all__ = [
    "FLOWS",
    "build_steps",
    "install_steps",
    "update_steps",
    "PreflightStep",
    "SystemUpdateStep",
    "SyncRepositoryStep",
    "ThirdPartyReposStep",
    "InstallHelperStep",
    "InstallPackagesStep",
    "DeployDotfilesStep",
    "EnableServicesStep",
    "InstallFlatpaksStep",
    "ChangeLoginShellStep",
    "InstallKernelStep",
    "ReportStep",
    "OfferRebootStep",
]

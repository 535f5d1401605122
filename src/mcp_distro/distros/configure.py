"""One-time setup of a freshly extracted distribution."""
from pathlib import Path
from string import Template

from mcp_distro.distros.layout import resolve_tool
from mcp_distro.errors import ConfigurationError
from mcp_distro.logging import get_logger
from mcp_distro.settings import Settings
from mcp_distro.types import DistributionDescriptor, InstalledLayout
from mcp_distro.utils.fs import async_subprocess_run

logger = get_logger(__name__)

GUEST_SCRIPT_PATH = "/tmp/.mcp-distro-configure.sh"

# Leaves root without a password so `login -f root` drops straight into a shell.
CONFIG_SCRIPT = Template(
    r"""#!/bin/sh
# Set up essential configuration

# Configure hostname
echo "$distro_id" > /etc/hostname

# Configure DNS
echo "nameserver 8.8.8.8" > /etc/resolv.conf
echo "nameserver 8.8.4.4" >> /etc/resolv.conf

# Set up basic profile
mkdir -p /root
cat > /root/.profile << 'EOF'
export LANG=C.UTF-8
export PATH=/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin
export TERM=xterm-256color
export PS1='\[\e[0;32m\]\u@\h\[\e[m\] \[\e[1;34m\]\w\[\e[m\] \[\e[1;32m\]\$$\[\e[m\] '
alias ll='ls -la'
EOF

cat > /root/.bashrc << 'EOF'
[ -f /root/.profile ] && . /root/.profile
EOF

# Make login work without password
sed -i 's/nullok_secure/nullok/' /etc/pam.d/common-auth 2>/dev/null || true

# Empty root password
if command -v passwd > /dev/null; then
    sed -i 's|^root:[^:]*:|root::|' /etc/passwd
    passwd -d root > /dev/null 2>&1 || true
fi

# Mount point for shared storage
if [ ! -d $shared_guest ]; then
    mkdir -p $shared_guest
fi

# Login banner
mkdir -p /etc/profile.d
cat > /etc/profile.d/welcome.sh << 'EOF'
#!/bin/sh
echo ""
echo "Welcome to $display_name"
echo "Type 'apt update && apt upgrade' to update the system packages."
echo ""
uname -a
echo ""
EOF
chmod +x /etc/profile.d/welcome.sh

exit 0
"""
)


def render_config_script(descriptor: DistributionDescriptor, shared_guest: str = "/sdcard") -> str:
    return CONFIG_SCRIPT.substitute(
        distro_id=descriptor.id,
        display_name=descriptor.display_name,
        shared_guest=shared_guest,
    )


def build_configure_command(proot: str, layout: InstalledLayout, script_path: Path) -> list[str]:
    return [
        proot,
        "-r", str(layout.rootfs_dir),
        "-w", "/root",
        "-b", "/proc",
        "-b", "/sys",
        "-b", f"{script_path}:{GUEST_SCRIPT_PATH}",
        "/bin/sh", GUEST_SCRIPT_PATH,
    ]


async def configure_distribution(
    layout: InstalledLayout, descriptor: DistributionDescriptor, settings: Settings
) -> None:
    """Run the setup script inside the new root filesystem."""
    proot = resolve_tool(settings, "proot")

    settings.cache_dir.mkdir(parents=True, exist_ok=True)
    script_path = settings.cache_dir / f"configure_{descriptor.id}.sh"

    try:
        script_path.write_text(render_config_script(descriptor, settings.shared_storage_guest))
        script_path.chmod(0o755)

        cmd = build_configure_command(proot, layout, script_path)
        returncode, output = await async_subprocess_run(cmd, cwd=layout.install_dir)
    finally:
        script_path.unlink(missing_ok=True)

    if returncode != 0:
        logger.error(
            "configuration_failed", distro=descriptor.id, returncode=returncode, output=output
        )
        raise ConfigurationError(returncode, output)

    logger.info("distribution_configured", distro=descriptor.id)

"""Remote paths, commands and boot scripts used for mount-based installs.

Every template contains :data:`PLACEHOLDER` where the target package name
goes. Use :func:`substitute` to fill it in.
"""

from __future__ import annotations

PLACEHOLDER = "PLACEHOLDER"

PATH_STAGING = "/data/local/tmp/patchctl.delete"
PATH_WORKING_DIR = "/data/adb/patchctl/"
PATH_MOUNTED_APK = f"{PATH_WORKING_DIR}{PLACEHOLDER}.apk"
PATH_MOUNT_SCRIPT = f"/data/adb/service.d/mount_patchctl_{PLACEHOLDER}.sh"
PATH_UNMOUNT_SCRIPT = f"/data/adb/post-fs-data.d/unmount_patchctl_{PLACEHOLDER}.sh"

COMMAND_ROOT_PROBE = "su -h"
COMMAND_CREATE_DIR = "mkdir -p"
COMMAND_PID_OF = "pidof -s"
COMMAND_PREPARE_MOUNT_APK = (
    f'base_path="{PATH_MOUNTED_APK}" && '
    f"mv {PATH_STAGING} $base_path && "
    "chmod 644 $base_path && "
    "chown system:system $base_path && "
    "chcon u:object_r:apk_data_file:s0 $base_path"
)
COMMAND_INSTALL_SCRIPT = f"mv {PATH_STAGING} {{script}} && chmod +x {{script}}"
COMMAND_INSTALL_MOUNT_SCRIPT = COMMAND_INSTALL_SCRIPT.format(script=PATH_MOUNT_SCRIPT)
COMMAND_INSTALL_UNMOUNT_SCRIPT = COMMAND_INSTALL_SCRIPT.format(script=PATH_UNMOUNT_SCRIPT)
COMMAND_RESTART = (
    f"am force-stop {PLACEHOLDER} && "
    f"pm resolve-activity --brief {PLACEHOLDER} | tail -n 1 | xargs am start -n"
)
COMMAND_LOGCAT = "logcat -c && logcat | grep AndroidRuntime"

CONTENT_MOUNT_SCRIPT = f"""#!/system/bin/sh
MAGISKTMP="$(magisk --path)" || MAGISKTMP=/sbin
MIRROR="$MAGISKTMP/.magisk/mirror"

until [ "$(getprop sys.boot_completed)" = 1 ]; do sleep 3; done
until [ -d "/sdcard/Android" ]; do sleep 1; done

base_path="{PATH_MOUNTED_APK}"
stock_path=$(pm path {PLACEHOLDER} | grep base | sed 's/package://g')

[ -z "$stock_path" ] && exit 1

chcon u:object_r:apk_data_file:s0 "$base_path"
mount -o bind "$MIRROR$base_path" "$stock_path"
"""

CONTENT_UNMOUNT_SCRIPT = f"""#!/system/bin/sh
stock_path=$(pm path {PLACEHOLDER} | grep base | sed 's/package://g')
[ -n "$stock_path" ] && umount -l "$stock_path"
grep {PLACEHOLDER} /proc/mounts | while read -r line; do echo "$line" | cut -d " " -f 2 | xargs -r umount -l; done
"""


def substitute(template: str, value: str) -> str:
    """Replace the package placeholder in ``template`` with ``value``."""
    if not value:
        raise ValueError("Substitution value must not be empty")
    return template.replace(PLACEHOLDER, value)

"""
NodeSwitcher 命令行接口模块。
"""

import argparse
import json
import logging
import sys
from typing import Optional, List

from nodeswitcher.core.config_manager import KNOWN_TOOLS, ConfigValidationError, ConfigSaveError
from nodeswitcher.core.context import AppContext
from nodeswitcher.core.interfaces import IUserPrompter
from nodeswitcher.core.models import Scope
from nodeswitcher.core.node_service import NodeVersionService, NodeServiceError
from nodeswitcher.core import pin_handler
from nodeswitcher.utils.input_validator import InputValidator, InputValidationError
from nodeswitcher.utils.logger import get_logger, setup_logger

logger = get_logger()

PIN_RESULT_TEXT = {
    pin_handler.APPLY_DISABLED: "固定版本自动应用已关闭（settings.auto_apply_pin）",
    pin_handler.APPLY_NO_MANAGER: "没有可用的版本管理工具",
    pin_handler.APPLY_NO_PIN: "没有找到固定版本文件",
    pin_handler.APPLY_UNREADABLE: "固定版本文件无法读取",
    pin_handler.APPLY_ALREADY_ACTIVE: "固定版本已生效",
    pin_handler.APPLY_DECLINED: "已跳过固定版本",
    pin_handler.APPLY_APPLIED: "已应用固定版本",
    pin_handler.APPLY_FAILED: "应用固定版本失败",
}


class ConsolePrompter(IUserPrompter):
    """
    控制台交互实现。

    assume_yes 为 True 时不读取输入，直接选择第一个选项。
    """

    def __init__(self, assume_yes: bool = False, stream=None):
        self.assume_yes = assume_yes
        self.stream = stream or sys.stdout

    def _print(self, message: str, err: bool = False) -> None:
        print(message, file=sys.stderr if err else self.stream)

    def ask(self, message: str, choices: List[str]) -> Optional[str]:
        if not choices:
            return None
        if self.assume_yes:
            self._print(f"{message} -> {choices[0]}")
            return choices[0]

        self._print(message)
        for i, choice in enumerate(choices, 1):
            self._print(f"  {i}) {choice}")
        try:
            answer = input("请选择编号: ").strip()
        except EOFError:
            return None
        if answer.isdigit() and 1 <= int(answer) <= len(choices):
            return choices[int(answer) - 1]
        if answer in choices:
            return answer
        return None

    def ask_text(self, message: str) -> Optional[str]:
        if self.assume_yes:
            return None
        try:
            return input(f"{message}: ").strip() or None
        except EOFError:
            return None

    def info(self, message: str) -> None:
        self._print(message)

    def warn(self, message: str) -> None:
        self._print(f"警告: {message}", err=True)

    def error(self, message: str) -> None:
        self._print(f"错误: {message}", err=True)


def create_parser() -> argparse.ArgumentParser:
    """
    创建并配置命令行参数解析器。

    返回:
        配置好的 ArgumentParser 实例
    """
    parser = argparse.ArgumentParser(
        prog="nodeswitcher",
        description="NodeSwitcher - Node.js 版本切换工具（nvm/fnm/volta/mise/pnpm）",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  nodeswitcher                      启动托盘图标
  nodeswitcher current              显示当前 Node.js 版本
  nodeswitcher list --remote        列出可安装的 LTS 版本
  nodeswitcher use 20 --scope local 在当前项目中使用 Node.js 20
  nodeswitcher install 22.1.0       安装 Node.js 22.1.0
  nodeswitcher pin --apply          应用项目中的 .nvmrc 等固定版本
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="启用详细输出",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="配置目录路径",
    )

    parser.add_argument(
        "--dir",
        "-d",
        type=str,
        default=None,
        help="项目目录（默认为当前目录）",
    )

    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="不询问，自动选择默认选项",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="命令",
        description="可用的 CLI 命令",
    )

    subparsers.add_parser(
        "current",
        help="显示当前 Node.js 版本",
    )

    list_parser = subparsers.add_parser(
        "list",
        help="列出已安装的 Node.js 版本",
    )
    list_parser.add_argument(
        "--remote",
        "-r",
        action="store_true",
        help="显示可安装的远程版本",
    )
    list_parser.add_argument(
        "--format",
        "-f",
        choices=["simple", "json"],
        default="simple",
        help="输出格式",
    )

    use_parser = subparsers.add_parser(
        "use",
        help="切换到指定版本",
    )
    use_parser.add_argument(
        "version",
        help="要切换到的版本",
    )
    use_parser.add_argument(
        "--scope",
        "-s",
        choices=[s.value for s in Scope],
        default=None,
        help="作用域（global 或 local），省略时询问",
    )

    install_parser = subparsers.add_parser(
        "install",
        help="安装指定版本",
    )
    install_parser.add_argument(
        "version",
        help="要安装的版本（例如 24、22.1.0、lts）",
    )
    install_parser.add_argument(
        "--activate",
        "-a",
        choices=["global", "local", "no"],
        default=None,
        help="安装后是否设为当前版本，省略时询问",
    )

    subparsers.add_parser(
        "detect",
        help="重新检测版本管理工具",
    )

    subparsers.add_parser(
        "managers",
        help="列出所有版本管理工具及其状态",
    )

    switch_parser = subparsers.add_parser(
        "switch-manager",
        help="切换使用的版本管理工具",
    )
    switch_parser.add_argument(
        "name",
        help=f"工具名称 ({', '.join(KNOWN_TOOLS)})",
    )

    pin_parser = subparsers.add_parser(
        "pin",
        help="显示项目的固定版本",
    )
    pin_parser.add_argument(
        "--apply",
        action="store_true",
        help="固定版本未生效时切换到该版本",
    )

    subparsers.add_parser(
        "watch",
        help="监视项目中的固定版本文件并自动应用",
    )

    config_parser = subparsers.add_parser(
        "config",
        help="显示或编辑配置",
    )
    config_parser.add_argument(
        "--set",
        "-s",
        type=str,
        help="设置配置值（格式：key=value，例如 preferred_tool=fnm）",
    )

    subparsers.add_parser(
        "tray",
        help="启动托盘图标",
    )

    return parser


def create_service(args: argparse.Namespace, prompter: Optional[IUserPrompter] = None) -> NodeVersionService:
    """
    根据命令行参数创建版本服务。

    参数:
        args: 解析后的命令行参数
        prompter: 用户交互接口，默认为控制台交互

    返回:
        NodeVersionService 实例
    """
    if prompter is None:
        prompter = ConsolePrompter(assume_yes=getattr(args, "yes", False))
    context = AppContext.create(
        config_dir=getattr(args, "config", None),
        workspace_dir=getattr(args, "dir", None),
        prompter=prompter,
    )
    return NodeVersionService(context)


def run_cli(args: argparse.Namespace, service: Optional[NodeVersionService] = None) -> int:
    """
    运行命令行接口。

    参数:
        args: 解析后的命令行参数
        service: 版本服务，None 时根据参数创建

    返回:
        退出码（0 表示成功）
    """
    if args.verbose:
        setup_logger(level=logging.DEBUG, console_level=logging.DEBUG)
    else:
        setup_logger()

    if args.command is None:
        print("未指定命令。使用 --help 查看帮助信息。")
        return 1

    command_handlers = {
        "current": handle_current,
        "list": handle_list,
        "use": handle_use,
        "install": handle_install,
        "detect": handle_detect,
        "managers": handle_managers,
        "switch-manager": handle_switch_manager,
        "pin": handle_pin,
        "watch": handle_watch,
        "config": handle_config,
        "tray": handle_tray,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        print(f"未知命令: {args.command}")
        return 1

    if args.command == "tray":
        return handler(args, None)

    if service is None:
        service = create_service(args)
    try:
        return handler(args, service)
    except NodeServiceError as e:
        print(f"错误: {e}", file=sys.stderr)
        return 1
    except (ConfigValidationError, ConfigSaveError, InputValidationError) as e:
        print(f"错误: {e}", file=sys.stderr)
        return 1


def handle_current(args: argparse.Namespace, service: NodeVersionService) -> int:
    """
    处理 current 命令：显示当前版本。

    参数:
        args: 解析后的命令行参数
        service: 版本服务

    返回:
        退出码
    """
    manager = service.require_manager()
    current = manager.get_current_version()
    if current:
        print(f"{current}（{manager.get_display_name()}）")
    else:
        print(f"未设置（{manager.get_display_name()}）")
    return 0


def handle_list(args: argparse.Namespace, service: NodeVersionService) -> int:
    """
    处理 list 命令：列出已安装或远程可用的版本。

    参数:
        args: 解析后的命令行参数
        service: 版本服务

    返回:
        退出码
    """
    manager = service.require_manager()

    if args.remote:
        print(f"正在获取可安装的 Node.js 版本（{manager.get_display_name()}）...", file=sys.stderr)
        versions = service.list_available_versions()
        if args.format == "json":
            print(json.dumps(versions, indent=2))
        elif not versions:
            print("未找到可安装的版本")
        else:
            for v in versions:
                print(f"  {v}")
        return 0

    versions = service.list_installed_versions()
    current = manager.get_current_version()

    if args.format == "json":
        result = {
            "manager": manager.name,
            "current": current,
            "versions": versions,
        }
        print(json.dumps(result, indent=2))
        return 0

    if not versions:
        print(f"{manager.get_display_name()} 中没有已安装的 Node.js 版本")
        return 0

    print(f"已安装版本（{manager.get_display_name()}）:")
    for v in versions:
        marker = " *" if v == current else "  "
        print(f"{marker} {v}")
    print(f"\n当前版本: {current or '未设置'}")
    return 0


def handle_use(args: argparse.Namespace, service: NodeVersionService) -> int:
    """
    处理 use 命令：切换到指定版本。

    参数:
        args: 解析后的命令行参数
        service: 版本服务

    返回:
        退出码
    """
    InputValidator.validate_version_string(args.version)
    version = InputValidator.sanitize_version_string(args.version)
    result = service.switch_version(version, Scope.parse(args.scope))
    return 0 if result is not None else 1


def handle_install(args: argparse.Namespace, service: NodeVersionService) -> int:
    """
    处理 install 命令：安装指定版本。

    参数:
        args: 解析后的命令行参数
        service: 版本服务

    返回:
        退出码
    """
    InputValidator.validate_version_string(args.version)
    version = InputValidator.sanitize_version_string(args.version)
    activate = args.activate
    if activate is None and args.yes:
        activate = "no"
    return 0 if service.install_version(version, activate=activate) else 1


def handle_detect(args: argparse.Namespace, service: NodeVersionService) -> int:
    """处理 detect 命令：重新检测并输出每个工具的检测结果。"""
    result = service.refresh()
    for name, ok in result.tried:
        print(f"  {'✓' if ok else '✗'} {name}")
    if result.active:
        print(f"\n当前使用: {result.active}")
        return 0
    print("\n未检测到 Node.js 版本管理工具，可以安装以下任一工具:")
    for url in service.detector.get_recommended_install_urls():
        print(f"  {url}")
    return 1


def handle_managers(args: argparse.Namespace, service: NodeVersionService) -> int:
    """处理 managers 命令：列出所有工具。"""
    service.ensure_detected()
    detector = service.detector
    detector.detect_available()
    active = detector.get_active_manager()

    for manager in detector.managers:
        marker = "*" if manager is active else " "
        if manager.is_available:
            scope = "支持项目作用域" if manager.supports_scope() else "仅全局/仅项目"
            print(f"{marker} {manager.name:<12} {manager.get_display_name()}  {manager.executable_path}  ({scope})")
        else:
            print(f"  {manager.name:<12} 未安装  {detector.get_install_url(manager.name)}")
    return 0


def handle_switch_manager(args: argparse.Namespace, service: NodeVersionService) -> int:
    """
    处理 switch-manager 命令：切换使用的工具并保存为首选工具。

    参数:
        args: 解析后的命令行参数
        service: 版本服务

    返回:
        退出码
    """
    name = InputValidator.sanitize_tool_name(args.name)
    InputValidator.validate_tool_name(name, known_tools=KNOWN_TOOLS)

    service.ensure_detected()
    if not service.detector.switch_manager(name):
        print(f"无法切换到 {name}：未检测到该工具（{service.detector.get_install_url(name)}）", file=sys.stderr)
        return 1
    service.context.config_manager.set_setting("preferred_tool", name)
    print(f"已切换到 {name}")
    return 0


def handle_pin(args: argparse.Namespace, service: NodeVersionService) -> int:
    """
    处理 pin 命令：显示或应用项目的固定版本。

    参数:
        args: 解析后的命令行参数
        service: 版本服务

    返回:
        退出码
    """
    service.require_manager()
    workspace = service.context.workspace_dir

    if args.apply:
        result = service.apply_pin(workspace)
        print(PIN_RESULT_TEXT.get(result, result))
        return 1 if result in (pin_handler.APPLY_FAILED, pin_handler.APPLY_UNREADABLE) else 0

    handler = service.create_pin_handler()
    pin = handler.find_pin(workspace)
    if pin is None:
        names = ", ".join(handler.get_watch_filenames())
        print(f"没有找到固定版本文件（{names}）")
        return 0
    if not pin.version:
        print(f"{pin.path}: 无法读取版本")
        return 1

    matching = handler.is_version_matching(pin.version)
    print(f"{pin.path}: {pin.version}（{pin.source}）")
    print("已生效" if matching else "未生效，使用 pin --apply 切换")
    return 0


def handle_watch(args: argparse.Namespace, service: NodeVersionService) -> int:
    """
    处理 watch 命令：监视固定版本文件，变化时重新应用。

    参数:
        args: 解析后的命令行参数
        service: 版本服务

    返回:
        退出码
    """
    try:
        from PySide6.QtCore import QCoreApplication
        from nodeswitcher.ui.viewmodels.pin_watcher import PinFileWatcher
    except ImportError as e:
        print(f"错误：watch 命令需要安装 PySide6。{e}")
        return 1

    import signal

    service.require_manager()
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    watcher = PinFileWatcher(service, service.context.workspace_dir)
    watcher.start()
    service.apply_pin()

    signal.signal(signal.SIGINT, signal.SIG_DFL)
    print(f"正在监视 {service.context.workspace_dir}（Ctrl+C 退出）")
    try:
        return app.exec()
    finally:
        watcher.dispose()


def handle_config(args: argparse.Namespace, service: NodeVersionService) -> int:
    """
    处理 config 命令：显示或编辑配置。

    参数:
        args: 解析后的命令行参数
        service: 版本服务

    返回:
        退出码
    """
    config_manager = service.context.config_manager

    if args.set:
        key, _, value = args.set.partition("=")
        key = key.strip()
        if key.startswith("settings."):
            key = key[len("settings."):]
        if not key or not value:
            print("格式无效。请使用: key=value")
            return 1

        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            pass

        config_manager.set_setting(key, value)
        print(f"已设置 {key} = {value}")
    else:
        print(json.dumps(config_manager.get_config(), indent=2, ensure_ascii=False))

    return 0


def handle_tray(args: argparse.Namespace, service: Optional[NodeVersionService] = None) -> int:
    """处理 tray 命令：启动托盘图标。"""
    from nodeswitcher.ui import run_gui
    return run_gui(args)

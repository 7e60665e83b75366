"""
CLI 模块

命令行接口实现。
"""

import asyncio
import os
from typing import Awaitable, Callable, List, TypeVar

import click
from loguru import logger

from modpackman import __version__
from modpackman.exceptions import ModPackError
from modpackman.logger import setup_logger
from modpackman.models import InstallRequest, ModEntry, ModPackManConfig
from modpackman.orchestrator import ModPackOrchestrator
from modpackman.utils import iter_file_chunks, load_config

T = TypeVar("T")

DEFAULT_CONFIG = "modpacks.toml"


def run_with_orchestrator(
    config: ModPackManConfig, action: Callable[[ModPackOrchestrator], Awaitable[T]]
) -> T:
    """在新的事件循环中执行一个用例，库异常转换为 ClickException"""

    async def runner() -> T:
        async with ModPackOrchestrator(config) as orchestrator:
            return await action(orchestrator)

    try:
        return asyncio.run(runner())
    except ModPackError as e:
        logger.error(f"[错误] {e}")
        raise click.ClickException(e.message)


def echo_mods(entries: List[ModEntry]) -> None:
    if not entries:
        click.echo("（没有模组）")
        return
    for entry in entries:
        status = "✓" if entry.enabled else "✗"
        version = f" v{entry.version}" if entry.version else ""
        file_name = entry.file_name if entry.present else "文件缺失"
        click.echo(f"  [{status}] {entry.name}{version} ({file_name})")


@click.group()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"配置文件路径（默认读取 {DEFAULT_CONFIG}，不存在时使用默认配置）",
)
@click.option("--modpack-dir", help="整合包根目录，覆盖配置文件")
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, config_path: str, modpack_dir: str, debug: bool):
    """ModPackMan - 游戏服务器整合包管理工具"""
    if config_path is None and os.path.exists(DEFAULT_CONFIG):
        config_path = DEFAULT_CONFIG

    try:
        config = load_config(config_path)
    except ModPackError as e:
        raise click.ClickException(e.message)

    if modpack_dir:
        config.modpack_dir = modpack_dir

    setup_logger(
        level="DEBUG" if debug else config.logging.level,
        log_file=config.logging.file,
    )
    ctx.obj = config


@main.command()
@click.option("--host", help="监听地址")
@click.option("--port", type=int, help="监听端口")
@click.pass_obj
def serve(config: ModPackManConfig, host: str, port: int):
    """启动 HTTP 服务"""
    from modpackman.server import run_server

    if host:
        config.server.host = host
    if port:
        config.server.port = port
    run_server(config)


@main.command("list")
@click.pass_obj
def list_packs(config: ModPackManConfig):
    """列出所有整合包"""
    packs = run_with_orchestrator(config, lambda o: o.list_packs())
    for name in packs:
        click.echo(name)


@main.command()
@click.argument("name")
@click.pass_obj
def create(config: ModPackManConfig, name: str):
    """创建整合包"""
    run_with_orchestrator(config, lambda o: o.create_pack(name))
    click.echo(f"已创建整合包 {name}")


@main.command()
@click.argument("name")
@click.confirmation_option(prompt="确定要删除整个整合包吗？")
@click.pass_obj
def delete(config: ModPackManConfig, name: str):
    """删除整合包"""
    run_with_orchestrator(config, lambda o: o.delete_pack(name))
    click.echo(f"已删除整合包 {name}")


@main.command()
@click.argument("name")
@click.pass_obj
def load(config: ModPackManConfig, name: str):
    """加载整合包（清单与目录对账）"""
    echo_mods(run_with_orchestrator(config, lambda o: o.load_pack(name)))


@main.command()
@click.argument("name")
@click.pass_obj
def mods(config: ModPackManConfig, name: str):
    """列出整合包中的模组"""
    echo_mods(run_with_orchestrator(config, lambda o: o.list_mods(name)))


@main.command()
@click.argument("pack")
@click.argument("mod")
@click.pass_obj
def toggle(config: ModPackManConfig, pack: str, mod: str):
    """切换模组启用状态"""
    enabled = run_with_orchestrator(config, lambda o: o.toggle_mod(pack, mod))
    click.echo(f"{mod}: {'已启用' if enabled else '已禁用'}")


@main.command()
@click.argument("pack")
@click.argument("mod")
@click.pass_obj
def remove(config: ModPackManConfig, pack: str, mod: str):
    """删除整合包中的模组"""
    run_with_orchestrator(config, lambda o: o.delete_mod(pack, mod))
    click.echo(f"已删除模组 {mod}")


@main.command()
@click.argument("pack")
@click.argument("mod")
@click.argument("url")
@click.argument("filename")
@click.pass_obj
def update(config: ModPackManConfig, pack: str, mod: str, url: str, filename: str):
    """用指定地址的文件替换模组"""
    entry = run_with_orchestrator(
        config, lambda o: o.update_mod(pack, mod, url, filename)
    )
    echo_mods([entry])


@main.command()
@click.argument("pack")
@click.confirmation_option(prompt="确定要删除整合包中的所有模组吗？")
@click.pass_obj
def reset(config: ModPackManConfig, pack: str):
    """删除整合包中的所有模组"""
    run_with_orchestrator(config, lambda o: o.reset_pack(pack))
    click.echo(f"整合包 {pack} 已清空")


@main.command()
@click.argument("pack")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def upload(config: ModPackManConfig, pack: str, file: str):
    """上传本地模组文件到整合包"""
    entries = run_with_orchestrator(
        config,
        lambda o: o.upload_mod(
            pack,
            iter_file_chunks(file, config.download.chunk_size),
            os.path.basename(file),
        ),
    )
    echo_mods(entries)


@main.command()
@click.argument("pack")
@click.argument("mod")
@click.argument("url")
@click.argument("filename")
@click.pass_obj
def install(config: ModPackManConfig, pack: str, mod: str, url: str, filename: str):
    """从下载地址安装单个模组"""
    echo_mods(
        run_with_orchestrator(config, lambda o: o.install_mod(pack, url, filename, mod))
    )


@main.command("install-many")
@click.argument("pack")
@click.argument("specs", nargs=-1, required=True)
@click.pass_obj
def install_many(config: ModPackManConfig, pack: str, specs: tuple):
    """按 name@version 从门户批量安装模组"""
    try:
        requests = [InstallRequest.from_spec(spec) for spec in specs]
    except ModPackError as e:
        raise click.BadParameter(e.message, param_hint="SPECS")
    echo_mods(run_with_orchestrator(config, lambda o: o.install_many(pack, requests)))


@main.command()
@click.argument("pack")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="输出文件路径")
@click.pass_obj
def export(config: ModPackManConfig, pack: str, output: str):
    """导出整合包为 zip"""
    output = output or f"{pack}.zip"
    run_with_orchestrator(config, lambda o: o.export_pack_to(pack, output))
    click.echo(f"已导出到 {output}")


if __name__ == "__main__":
    main()

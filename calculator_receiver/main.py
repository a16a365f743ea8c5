import atexit
import asyncio
import json
import logging
import re
import signal
import sys
from logging.handlers import TimedRotatingFileHandler
from typing import List

import websockets
import websockets.exceptions

from calculator_receiver import config
from calculator_receiver.infix import calculate
from calculator_receiver.message import TextMessage, send_message, GroupTextMessage, UserTextMessage
from calculator_receiver.screen import format_result
from calculator_receiver.session import ScreenStore

# 全局用户屏幕缓存实例，main 中启动保存线程
screen_store = ScreenStore()

# 用于标识是否已执行清理
cleanup_done = False

COMMAND_PREFIXES = ('.', '。')

HELP_TEXT = "支持的指令: \n.help\n.info\n.calc 表达式\n.c 表达式\n.key 按键\n.screen\n"
INFO_TEXT = "四则运算计算器bot\n支持 + - * / 与开头的负号，按键 = 计算，C 清屏"


def cleanup():
    global cleanup_done
    if not cleanup_done:
        logging.info("执行清理操作...")
        screen_store.stop()
        cleanup_done = True


# 信号处理函数
def signal_handler(signum, frame):
    logging.info(f"收到信号 {signum}，准备退出...")
    cleanup()
    sys.exit(0)


atexit.register(cleanup)


def parse_commands(message_text: str) -> List[str]:
    """
    从文本消息中取出指令，每行一个，以 . 或 。 开头
    """
    stripped_message = message_text.strip()
    if not stripped_message.startswith(COMMAND_PREFIXES) or len(stripped_message) == 1:
        return []
    commands: List[str] = []
    for single_command in stripped_message.split('\n'):
        single_command = single_command.strip()
        if single_command.startswith(COMMAND_PREFIXES):
            actual_command = single_command[1:].strip()
            if len(actual_command) > 0:  # 忽略空行
                commands.append(actual_command)
    return commands


def collect_replies(message_dict: dict, store: ScreenStore or None = None) -> List[TextMessage]:
    """
    处理一条 OneBot 事件，返回需要发送的回复
    消息中有 @ 时，只有 @ 了自己或全体成员才回复
    """
    if "self_id" not in message_dict:
        return []
    if "sender" not in message_dict or "message" not in message_dict:
        return []

    self_id: int = message_dict["self_id"]
    group_id: int or None = message_dict.get("group_id")

    sender = message_dict["sender"]
    if "user_id" not in sender or "nickname" not in sender:
        return []

    sender_id: int = sender["user_id"]
    if self_id == sender_id:
        return []

    logging.info(f"收到消息: {message_dict}")

    sender_nickname = sender["nickname"]
    messages = message_dict["message"]
    if not isinstance(messages, list):
        return []

    has_at = False
    at_self = False
    commands: List[str] = []

    for message in messages:
        message_type = message.get("type")
        message_data = message.get("data")
        if message_type == "text":
            if message_data is None or "text" not in message_data:
                continue
            commands.extend(parse_commands(message_data["text"]))
        elif message_type == "at":
            has_at = True
            if message_data is not None and "qq" in message_data:
                at_qq = str(message_data["qq"])
                if at_qq == str(self_id) or at_qq == "all":
                    at_self = True

    # @ 了别人时不执行任何指令，避免修改屏幕
    if has_at and not at_self:
        return []
    return [execute_command(command, sender_id, sender_nickname, group_id, store) for command in commands]


async def receive_messages(ws, store: ScreenStore or None = None):
    while True:
        try:
            message = await ws.recv()
            message_dict = json.loads(message)
            for result in collect_replies(message_dict, store):
                await send_message(ws, result)
        except websockets.exceptions.ConnectionClosed:
            logging.info("WebSocket 连接已关闭")
            break
        except json.JSONDecodeError:
            logging.error("接收到无效的 JSON 数据")
        except Exception as e:
            logging.error(f"发生未知错误: {e}")


def execute_command(command: str, sender_id: int, sender_nickname: str, group_id: int or None = None,
                    store: ScreenStore or None = None) -> TextMessage:
    # 记录执行的命令
    logging.info(f"用户 {sender_nickname}({sender_id}) 执行命令: {command}")

    if store is None:
        store = screen_store

    def to_text_message(message: str) -> TextMessage:
        if group_id is not None:
            return GroupTextMessage(group_id, message)
        else:
            return UserTextMessage(sender_id, message)

    def calculate_expression_message(expression: str) -> str:
        try:
            result = calculate(expression)
            return f"{sender_nickname} 计算得到 {format_result(result)}"
        except ValueError as e:
            logging.info(f"表达式 {expression} 无效: {e}")
            return f"值错误: {str(e)}"
        except Exception as e:
            logging.error(f"计算 {expression} 时出错: {e}")
            return f"未知错误: {str(e)}"

    def press_keys_message(keys: str) -> str:
        screen = store.get_session(sender_id, sender_nickname).screen
        try:
            screen.press_keys(keys)
        except ValueError as e:
            logging.info(f"按键 {keys} 无效: {e}")
            return f"值错误: {str(e)}\n{sender_nickname} 的屏幕: {screen.text}"
        return f"{sender_nickname} 的屏幕: {screen.text}"

    lower_command = command.lower()
    if lower_command == "info":
        return to_text_message(INFO_TEXT)

    if lower_command == "help":
        return to_text_message(HELP_TEXT)

    if lower_command == "screen":
        screen = store.get_session(sender_id, sender_nickname).screen
        return to_text_message(f"{sender_nickname} 的屏幕: {screen.text}")

    # 屏幕按键
    if lower_command.startswith("key"):
        keys = command[3:].strip()
        if keys == "":
            return to_text_message(f"{sender_nickname} 没有按下任何按键")
        return to_text_message(press_keys_message(keys))

    # 指令名后只能是空白、数字或负号，.clear 之类仍按未知指令处理
    if re.match(r"calc(\s|\d|-|$)", lower_command):
        return to_text_message(calculate_expression_message(command[4:].strip()))
    if re.match(r"c(\s|\d|-|$)", lower_command):
        return to_text_message(calculate_expression_message(command[1:].strip()))

    # 未知指令
    return to_text_message(f"未知指令: {command}\n支持的指令请执行.help")


def setup_logging() -> None:
    logging.basicConfig(level=logging.INFO, format=config.LOG_FORMAT)

    # 创建一个按天轮转的日志处理器，保留所有日志
    timed_handler = TimedRotatingFileHandler(
        filename=config.LOG_FILE,
        when='midnight',
        interval=1,
        backupCount=0,  # 设置为0表示不删除旧日志文件
        encoding='utf-8'
    )
    timed_handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
    logging.getLogger().addHandler(timed_handler)


async def main():
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    setup_logging()
    screen_store.start()

    uri = config.WS_URI

    try:
        async with websockets.connect(uri) as websocket:
            logging.info(f"已连接到WebSocket服务器: {uri}")
            await receive_messages(websocket)
    except Exception as e:
        logging.error(f"WebSocket连接失败: {e}")


def run():
    try:
        asyncio.run(main())
    finally:
        cleanup()


if __name__ == "__main__":
    run()

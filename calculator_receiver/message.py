import json
import uuid


class TextMessage:
    """
    计算器回复的纯文本，发往私聊还是群聊由子类决定
    """
    text: str


class UserTextMessage(TextMessage):
    """私聊回复"""
    user_id: int

    def __init__(self, user_id: int, text: str) -> None:
        self.user_id = user_id
        self.text = text


class GroupTextMessage(TextMessage):
    """群聊回复，发往指令所在的群"""
    group_id: int

    def __init__(self, group_id: int, text: str) -> None:
        self.group_id = group_id
        self.text = text


def to_action(message: TextMessage, echo: str) -> dict:
    """
    将文本消息转换为 OneBot 的发送动作
    """
    text_segment = {
        "type": "text",
        "data": {
            "text": message.text
        }
    }
    if isinstance(message, UserTextMessage):
        return {
            "action": "send_private_msg",
            "params": {
                "user_id": message.user_id,
                "message": text_segment
            },
            'echo': echo
        }
    if isinstance(message, GroupTextMessage):
        return {
            "action": "send_group_msg",
            "params": {
                "group_id": message.group_id,
                "message": text_segment
            },
            'echo': echo
        }
    raise TypeError(f"不支持的消息类型: {type(message).__name__}")


async def send_message(websocket, message: TextMessage):
    echo = str(uuid.uuid4())
    await websocket.send(json.dumps(to_action(message, echo), ensure_ascii=False))

import json
import tempfile
import unittest
from unittest.mock import AsyncMock

import websockets
import websockets.exceptions

from calculator_receiver.main import parse_commands, execute_command, collect_replies, receive_messages
from calculator_receiver.message import GroupTextMessage, UserTextMessage, send_message, to_action
from calculator_receiver.session import ScreenStore


class TestParseCommands(unittest.TestCase):
    def test_single_command(self):
        self.assertEqual(["calc 5+5"], parse_commands(".calc 5+5"))
        self.assertEqual(["c 1"], parse_commands("  。c 1  "))

    def test_multi_line(self):
        self.assertEqual(["c 1+1", "key 5"], parse_commands(".c 1+1\nhello\n.key 5\n."))

    def test_not_a_command(self):
        self.assertEqual([], parse_commands("hello"))
        self.assertEqual([], parse_commands("."))


class TestExecuteCommand(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.store = ScreenStore(data_dir=self.temp_dir.name)

    def execute(self, command: str, group_id=None):
        return execute_command(command, 10001, "tester", group_id, self.store)

    def test_calc(self):
        result = self.execute("calc 5+5*2")
        self.assertIsInstance(result, UserTextMessage)
        self.assertEqual(10001, result.user_id)
        self.assertEqual("tester 计算得到 15", result.text)
        self.assertEqual("tester 计算得到 2.5", self.execute("c 5/2").text)
        self.assertEqual("tester 计算得到 -1", self.execute("C-1").text)

    def test_calc_in_group(self):
        result = self.execute("calc 1/0", group_id=20002)
        self.assertIsInstance(result, GroupTextMessage)
        self.assertEqual(20002, result.group_id)
        self.assertEqual("tester 计算得到 inf", result.text)

    def test_calc_error(self):
        self.assertTrue(self.execute("calc 5*-2").text.startswith("值错误: "))
        self.assertEqual("值错误: 表达式为空", self.execute("calc").text)

    def test_key_and_screen(self):
        self.assertEqual("tester 的屏幕: 5+5", self.execute("key 5+5").text)
        self.assertEqual("tester 的屏幕: 10", self.execute("key =").text)
        self.assertEqual("tester 的屏幕: 10", self.execute("screen").text)
        self.assertEqual("tester 的屏幕: ", self.execute("key C").text)

    def test_key_error_keeps_screen(self):
        result = self.execute("key 5+=")
        self.assertTrue(result.text.startswith("值错误: "))
        self.assertTrue(result.text.endswith("tester 的屏幕: 5+"))

    def test_key_without_keys(self):
        self.assertEqual("tester 没有按下任何按键", self.execute("key").text)

    def test_help_and_unknown(self):
        self.assertIn(".calc", self.execute("help").text)
        self.assertTrue(self.execute("pot").text.startswith("未知指令: pot"))

    def test_commands_starting_with_c_are_not_calculations(self):
        self.assertTrue(self.execute("clear").text.startswith("未知指令: clear"))
        self.assertTrue(self.execute("cat").text.startswith("未知指令: cat"))
        self.assertTrue(self.execute("calculate 1+1").text.startswith("未知指令: "))
        self.assertEqual("tester 计算得到 3", self.execute("c1+2").text)
        self.assertEqual("tester 计算得到 3", self.execute("calc1+2").text)


class TestCollectReplies(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.store = ScreenStore(data_dir=self.temp_dir.name)

    @staticmethod
    def event(*segments, group_id=None, sender_id=10001):
        event = {
            "self_id": 1,
            "sender": {"user_id": sender_id, "nickname": "tester"},
            "message": list(segments),
        }
        if group_id is not None:
            event["group_id"] = group_id
        return event

    @staticmethod
    def text(text: str) -> dict:
        return {"type": "text", "data": {"text": text}}

    @staticmethod
    def at(qq) -> dict:
        return {"type": "at", "data": {"qq": qq}}

    def test_private_message(self):
        replies = collect_replies(self.event(self.text(".c 2*3")), self.store)
        self.assertEqual(1, len(replies))
        self.assertEqual("tester 计算得到 6", replies[0].text)

    def test_at_other_is_ignored(self):
        replies = collect_replies(self.event(self.at("2"), self.text(".c 2*3"), group_id=5), self.store)
        self.assertEqual([], replies)

    def test_at_other_does_not_press_keys(self):
        replies = collect_replies(self.event(self.at(2), self.text(".key 123"), group_id=5), self.store)
        self.assertEqual([], replies)
        self.assertEqual("", self.store.get_session(10001, "tester").screen.text)

    def test_text_before_at_other_is_ignored(self):
        replies = collect_replies(self.event(self.text(".key 9"), self.at(2), group_id=5), self.store)
        self.assertEqual([], replies)
        self.assertEqual("", self.store.get_session(10001, "tester").screen.text)

    def test_at_self(self):
        replies = collect_replies(self.event(self.at(1), self.text(".c 2*3"), group_id=5), self.store)
        self.assertEqual(1, len(replies))
        self.assertEqual(5, replies[0].group_id)

    def test_own_message_is_ignored(self):
        self.assertEqual([], collect_replies(self.event(self.text(".c 1"), sender_id=1), self.store))

    def test_not_a_message_event(self):
        self.assertEqual([], collect_replies({"self_id": 1, "post_type": "meta_event"}, self.store))
        self.assertEqual([], collect_replies({}, self.store))


class TestMessage(unittest.IsolatedAsyncioTestCase):
    def test_to_action(self):
        action = to_action(GroupTextMessage(5, "hi"), "echo-1")
        self.assertEqual("send_group_msg", action["action"])
        self.assertEqual(5, action["params"]["group_id"])
        self.assertEqual("hi", action["params"]["message"]["data"]["text"])
        self.assertEqual("echo-1", action["echo"])
        with self.assertRaises(TypeError):
            to_action(object(), "echo-2")

    async def test_send_message(self):
        websocket = AsyncMock()
        await send_message(websocket, UserTextMessage(7, "结果"))
        payload = json.loads(websocket.send.await_args.args[0])
        self.assertEqual("send_private_msg", payload["action"])
        self.assertEqual(7, payload["params"]["user_id"])
        self.assertEqual("结果", payload["params"]["message"]["data"]["text"])
        self.assertIn("echo", payload)

    async def test_receive_messages(self):
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        store = ScreenStore(data_dir=temp_dir.name)
        event = {
            "self_id": 1,
            "sender": {"user_id": 10001, "nickname": "tester"},
            "message": [{"type": "text", "data": {"text": ".calc 20/2/2"}}],
        }
        websocket = AsyncMock()
        websocket.recv.side_effect = [
            "not json",
            json.dumps(event),
            websockets.exceptions.ConnectionClosed(None, None),
        ]
        await receive_messages(websocket, store)
        self.assertEqual(1, websocket.send.await_count)
        payload = json.loads(websocket.send.await_args.args[0])
        self.assertEqual("tester 计算得到 5", payload["params"]["message"]["data"]["text"])


if __name__ == "__main__":
    unittest.main(verbosity=2)

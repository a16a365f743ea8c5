import logging
import math
from decimal import Decimal

from calculator_receiver.infix import calculate, DIGITS, OPERATORS, IllegalCharacterError

logger = logging.getLogger(__name__)

EQUALS_KEY = '='
CLEAR_KEYS = "Cc"


def format_result(value: float) -> str:
    """
    将计算结果转换为默认的十进制文本

    使用能还原该浮点数的最短位数，不使用科学计数法，整数值不带小数部分
    超过 2**53 的整数同样只保留最短位数，其余补 0
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), 'f')
    return text[:-2] if text.endswith('.0') else text


class CalculatorScreen:
    """
    计算器屏幕，按键依次输入到 text 中
    """
    text: str

    def __init__(self, text: str = "") -> None:
        self.text = text

    def __str__(self) -> str:
        return self.text

    def to_dict(self) -> dict:
        return {"text": self.text}

    @classmethod
    def from_dict(cls, data: dict) -> 'CalculatorScreen':
        return cls(data.get("text", ""))

    def clear(self) -> None:
        self.text = ""

    def press(self, key: str) -> str:
        """
        按下一个按键并返回屏幕内容
        = 计算当前表达式并用结果替换屏幕，C 清空屏幕，其余按键追加到屏幕
        计算失败时屏幕内容保持不变，异常继续抛出
        """
        if key == EQUALS_KEY:
            result = calculate(self.text)
            logger.debug(f"{self.text} = {result}")
            self.text = format_result(result)
        elif key in CLEAR_KEYS and len(key) == 1:
            self.clear()
        elif len(key) == 1 and (key in DIGITS or key in OPERATORS):
            self.text += key
        else:
            raise IllegalCharacterError(key, len(self.text))
        return self.text

    def press_keys(self, keys: str) -> str:
        for key in keys:
            if key.isspace():
                continue
            self.press(key)
        return self.text

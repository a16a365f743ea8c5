import logging
import math
from enum import Enum
from typing import List, Union

logger = logging.getLogger(__name__)

DIGITS = "0123456789"
OPERATORS = "+-*/"

precedence_table: dict[str, int] = {'+': 1, '-': 1, '*': 2, '/': 2}


class ExpressionError(ValueError):
    """
    表达式错误的基类，所有格式错误都从这里派生
    """


class EmptyExpressionError(ExpressionError):
    def __init__(self) -> None:
        super().__init__("表达式为空")


class IllegalCharacterError(ExpressionError):
    character: str
    position: int

    def __init__(self, character: str, position: int) -> None:
        super().__init__(f"非法字符: {character} (位置 {position})")
        self.character = character
        self.position = position


class UnbalancedOperatorsError(ExpressionError):
    """
    运算符与操作数不匹配：开头或结尾是运算符、两个运算符相邻、弹栈时操作数不足
    """


class UnexpectedOperandError(ExpressionError):
    """
    求值结束后栈中剩余多个操作数
    """


class Operator(Enum):
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'

    @classmethod
    def from_symbol(cls, symbol: str, position: int = 0) -> 'Operator':
        try:
            return cls(symbol)
        except ValueError:
            raise IllegalCharacterError(symbol, position) from None

    @property
    def precedence(self) -> int:
        return precedence_table[self.value]

    def apply(self, x: float, y: float) -> float:
        if self is Operator.ADD:
            return x + y
        if self is Operator.SUB:
            return x - y
        if self is Operator.MUL:
            return x * y
        return _divide(x, y)


def _divide(x: float, y: float) -> float:
    # 除零按 IEEE-754 处理：0/0 为 NaN，其余为带符号的无穷大
    if y == 0:
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)
    return x / y


def is_operator(c: str) -> bool:
    """
    判断字符是否为四则运算符
    """
    return len(c) == 1 and c in OPERATORS


def precedence(operator: Union[str, Operator]) -> int:
    """
    获取运算符优先级，未知字符返回 -1
    """
    if isinstance(operator, Operator):
        return operator.precedence
    return precedence_table.get(operator, -1)


def evaluate(x: float, y: float, operator: Union[str, Operator]) -> float:
    """
    计算 x 与 y 的二元运算结果，未知运算符返回 0.0
    :param x: 左操作数
    :param y: 右操作数
    :param operator: 运算符字符或 Operator
    """
    if not isinstance(operator, Operator):
        if not is_operator(operator):
            return 0.0
        operator = Operator(operator)
    return operator.apply(float(x), float(y))


def validate(expression: str) -> str:
    """
    去除空格并检查中缀表达式，返回可直接转换的表达式

    开头的负号会被改写为 0 减去后面的数，其余位置的负号不视为一元负号，
    例如 5*-2 会被当作运算符相邻而报错
    """
    # 非法字符的位置按原始输入计算
    for i, c in enumerate(expression):
        if c != ' ' and c not in DIGITS and c not in OPERATORS:
            raise IllegalCharacterError(c, i)

    expression = expression.replace(' ', '')
    if len(expression) == 0:
        raise EmptyExpressionError()

    # 处理开头的负号：-X 视为 0-X
    if expression[0] == '-':
        expression = "0" + expression

    if is_operator(expression[0]):
        raise UnbalancedOperatorsError(f"表达式不能以运算符开头: {expression[0]}")
    if is_operator(expression[-1]):
        raise UnbalancedOperatorsError(f"表达式不能以运算符结尾: {expression[-1]}")
    for i in range(1, len(expression)):
        if is_operator(expression[i]) and is_operator(expression[i - 1]):
            raise UnbalancedOperatorsError(f"运算符相邻: {expression[i - 1]}{expression[i]}")

    return expression


def to_postfix(infix: str) -> str:
    """
    使用调度场算法将中缀表达式转换为以空格分隔的后缀表达式

    >>> to_postfix("-1+5")
    '0 1 - 5 +'
    """
    infix = validate(infix)
    output: List[str] = []
    operator_stack: List[Operator] = []

    i: int = 0
    while i < len(infix):
        if infix[i] in DIGITS:
            # 连续的数字组成一个数
            start: int = i
            while i < len(infix) and infix[i] in DIGITS:
                i += 1
            output.append(infix[start:i])
            continue

        operator = Operator.from_symbol(infix[i], i)
        if not operator_stack or operator.precedence > operator_stack[-1].precedence:
            operator_stack.append(operator)
        else:
            # 同级运算符左结合，栈顶优先级不低于当前时先输出
            while operator_stack and operator_stack[-1].precedence >= operator.precedence:
                output.append(operator_stack.pop().value)
            operator_stack.append(operator)
        i += 1

    # 弹出剩余运算符
    while operator_stack:
        output.append(operator_stack.pop().value)

    return " ".join(output)


def evaluate_postfix(postfix: str) -> float:
    """
    计算后缀表达式的值，空白只作为分隔符
    """
    stack: List[float] = []

    i: int = 0
    while i < len(postfix):
        c = postfix[i]
        if c.isspace():
            i += 1
            continue

        if c in DIGITS:
            start: int = i
            while i < len(postfix) and postfix[i] in DIGITS:
                i += 1
            stack.append(float(postfix[start:i]))
            continue

        operator = Operator.from_symbol(c, i)
        if len(stack) < 2:
            raise UnbalancedOperatorsError(f"运算符 {c} 缺少操作数 (位置 {i})")

        # 先弹出的是右操作数
        x: float = stack.pop()
        y: float = stack.pop()
        stack.append(evaluate(y, x, operator))
        i += 1

    if len(stack) == 0:
        raise EmptyExpressionError()
    if len(stack) != 1:
        raise UnexpectedOperandError(f"表达式格式错误: 剩余 {len(stack)} 个操作数")

    return stack[0]


def calculate(expression: str) -> float:
    """
    计算中缀表达式的值
    :param expression: 中缀表达式字符串
    :return: 计算结果
    """
    # 1. 转换为后缀表达式
    postfix: str = to_postfix(expression)
    logger.debug(f"{expression} -> {postfix}")
    # 2. 计算后缀表达式
    return evaluate_postfix(postfix)

import json
import os
import logging


def load_data(file_path: str) -> dict[str, any]:
    """
    读取用户屏幕文件

    Args:
        file_path: 屏幕文件路径，一般为 <数据目录>/<用户id>.json

    Returns:
        文件中的 JSON 对象；文件缺失、损坏或顶层不是对象时为空字典，由调用方使用默认屏幕
    """
    if not os.path.exists(file_path):
        return {}
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logging.error(f"读取屏幕文件 {file_path} 失败: {e}")
        return {}
    if not isinstance(data, dict):
        logging.error(f"屏幕文件 {file_path} 顶层不是 JSON 对象，已忽略")
        return {}
    return data


def save_data(file_path: str, data: dict[str, any]) -> bool:
    """
    写入用户屏幕文件，缺少的上级目录会被创建
    中文昵称按原样写入，不做 ASCII 转义

    Returns:
        写入是否成功，失败只记录日志，不中断保存线程
    """
    try:
        abs_file_path = os.path.abspath(file_path)
        dir_name = os.path.dirname(abs_file_path)

        if dir_name and not os.path.exists(dir_name):
            os.makedirs(dir_name, exist_ok=True)
            logging.info(f"创建屏幕数据目录 {dir_name}")

        with open(abs_file_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        return True
    except IOError as e:
        logging.error(f"写入屏幕文件 {file_path} 失败: {e}")
        return False

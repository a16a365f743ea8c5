import logging
import os
import time
from threading import Thread, Event, Lock

from calculator_receiver import config
from calculator_receiver.json_data import save_data, load_data
from calculator_receiver.screen import CalculatorScreen


class ScreenSession:
    user_id: int
    nickname: str
    screen: CalculatorScreen
    data_dir: str

    def __init__(self, user_id: int, nickname: str, data_dir: str = config.DATA_DIR) -> None:
        self.user_id = user_id
        self.nickname = nickname
        self.screen = CalculatorScreen()
        self.data_dir = data_dir

    def file_path(self) -> str:
        return os.path.join(self.data_dir, f"{self.user_id}.json")

    def sync_to_file(self) -> None:
        save_data(self.file_path(), {
            "nickname": self.nickname,
            "screen": self.screen.to_dict(),
        })

    def sync_from_file(self) -> None:
        data = load_data(self.file_path())
        self.nickname = data.get("nickname", self.nickname)
        self.screen = CalculatorScreen.from_dict(data.get("screen", {}))


class ScreenStore:
    """
    用户屏幕管理类
    维护用户屏幕字典，定期保存到文件并清理长时间未使用的屏幕
    """
    sessions: dict[int, ScreenSession]
    last_access_time: dict[int, float]
    running: bool
    save_thread: Thread or None

    def __init__(self,
                 data_dir: str = config.DATA_DIR,
                 save_interval: float = config.SAVE_INTERVAL,
                 expire_seconds: float = config.EXPIRE_SECONDS) -> None:
        self.data_dir = data_dir
        self.save_interval = save_interval
        self.expire_seconds = expire_seconds
        self.sessions = {}
        self.last_access_time = {}
        self.running = False
        self.save_thread = None
        self._stop_event = Event()
        self._lock = Lock()

    def start(self) -> None:
        """
        启动后台保存线程
        """
        if self.running:
            return
        self.running = True
        self._stop_event.clear()
        self.save_thread = Thread(target=self._save_loop, daemon=True)
        self.save_thread.start()

    def get_session(self, user_id: int, nickname: str) -> ScreenSession:
        """
        获取用户屏幕，如果不存在则从文件加载或新建
        更新用户的最后访问时间
        """
        with self._lock:
            session = self.sessions.get(user_id)
            if session is None:
                session = ScreenSession(user_id, nickname, self.data_dir)
                session.sync_from_file()
                self.sessions[user_id] = session
            self.last_access_time[user_id] = time.time()
            return session

    def save_all(self) -> None:
        with self._lock:
            sessions = list(self.sessions.values())
        for session in sessions:
            try:
                session.sync_to_file()
            except Exception as e:
                logging.error(f"保存用户 {session.user_id} 的屏幕时出错: {e}")

    def _save_loop(self) -> None:
        while not self._stop_event.wait(self.save_interval):
            self.save_all()
            self.clean_expired()

    def clean_expired(self) -> list[int]:
        """
        保存并移除超过 expire_seconds 未访问的屏幕，返回被移除的用户
        """
        current_time = time.time()
        with self._lock:
            expired = [user_id for user_id, last_access in self.last_access_time.items()
                       if current_time - last_access > self.expire_seconds]
            removed = [self.sessions.pop(user_id) for user_id in expired]
            for user_id in expired:
                del self.last_access_time[user_id]
        for session in removed:
            session.sync_to_file()
        return expired

    def stop(self) -> None:
        """
        停止保存线程并保存所有屏幕
        """
        self.running = False
        self._stop_event.set()
        if self.save_thread is not None:
            self.save_thread.join(timeout=5)
            self.save_thread = None
        self.save_all()
        logging.info("屏幕存储已关闭")

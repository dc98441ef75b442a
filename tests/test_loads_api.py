"""
测试负载 API

测试 /api/samples、/api/servers/{name}/loads、/api/health 及兼容端点。
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# 添加项目路径到 sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from load_monitor.api.app import create_app
from load_monitor.api.dependencies import get_load_monitor
from load_monitor.service import LoadMonitor


@pytest.fixture
def monitor():
    return LoadMonitor()


@pytest.fixture
def client(monitor: LoadMonitor):
    """创建测试客户端（使用独立的服务实例）"""
    app = create_app()
    app.dependency_overrides[get_load_monitor] = lambda: monitor
    return TestClient(app)


def iso_ago(**kwargs) -> str:
    return (datetime.now(timezone.utc) - timedelta(**kwargs)).isoformat()


class TestRecordSample:
    """上报接口测试"""

    def test_record(self, client, monitor):
        """测试：上报成功返回 201 和已存储样本"""
        response = client.post("/api/samples", json={
            "name": "web-01", "cpu": 10.0, "mem": 50.0, "time": "2026-01-20T10:00:00Z",
        })
        assert response.status_code == 201

        data = response.json()
        assert data["name"] == "web-01"
        assert data["cpu"] == 10.0
        assert data["time"].startswith("2026-01-20T10:00:00")
        assert monitor.entities() == ["web-01"]

    def test_record_without_time(self, client, monitor):
        """测试：不带时间时使用接收时间"""
        response = client.post("/api/samples", json={"name": "web-01", "cpu": 1.0, "mem": 2.0})
        assert response.status_code == 201
        assert monitor.stats()["samples"] == 1

    def test_empty_name(self, client, monitor):
        """测试：空服务器名返回 400"""
        response = client.post("/api/samples", json={"name": "", "cpu": 1.0, "mem": 2.0})
        assert response.status_code == 400
        assert monitor.entities() == []

    def test_malformed_payload(self, client):
        """测试：缺少字段返回 422"""
        response = client.post("/api/samples", json={"name": "web-01", "cpu": 1.0})
        assert response.status_code == 422


class TestQueryLoads:
    """查询接口测试"""

    def test_same_minute_average(self, client):
        """测试：同一分钟两次上报，返回一个平均值桶"""
        client.post("/api/samples", json={"name": "web-01", "cpu": 10.0, "mem": 50.0, "time": iso_ago(seconds=50)})
        client.post("/api/samples", json={"name": "web-01", "cpu": 20.0, "mem": 60.0, "time": iso_ago(seconds=20)})

        response = client.get("/api/servers/web-01/loads")
        assert response.status_code == 200

        data = response.json()
        assert data["name"] == "web-01"
        assert data["has_data"] is True
        assert data["sample_count"] == 2
        assert data["message"] is None
        assert [w["window"] for w in data["windows"]] == ["1h:1m", "1d:1h"]

        last_hour = data["windows"][0]
        assert last_hour["length_seconds"] == 3600
        assert last_hour["bucket_seconds"] == 60
        assert last_hour["cpu"] == [15.0]
        assert last_hour["mem"] == [55.0]
        assert last_hour["buckets"][0]["index"] == 1
        assert last_hour["buckets"][0]["count"] == 2

    def test_custom_window_with_gaps(self, client):
        """测试：自定义窗口并输出空桶"""
        client.post("/api/samples", json={"name": "web-01", "cpu": 30.0, "mem": 3.0, "time": iso_ago(minutes=2, seconds=30)})

        response = client.get("/api/servers/web-01/loads", params={"window": "10m:1m", "fill_gaps": "true"})
        assert response.status_code == 200

        windows = response.json()["windows"]
        assert len(windows) == 1
        assert len(windows[0]["buckets"]) == 10
        assert windows[0]["cpu"][:4] == [None, None, 30.0, None]

    def test_multiple_windows(self, client):
        """测试：重复 window 参数"""
        client.post("/api/samples", json={"name": "web-01", "cpu": 1.0, "mem": 1.0, "time": iso_ago(seconds=30)})

        response = client.get("/api/servers/web-01/loads?window=5m:1m&window=30m:10m")
        assert response.status_code == 200
        assert [w["window"] for w in response.json()["windows"]] == ["5m:1m", "30m:10m"]

    def test_unknown_server(self, client):
        """测试：未知服务器返回 404"""
        response = client.get("/api/servers/ghost/loads")
        assert response.status_code == 404
        assert "ghost" in response.json()["detail"]

    def test_empty_history(self, client, monitor):
        """测试：已知但无样本的服务器返回 200 和提示"""
        monitor.store.get_or_create("idle-01")

        response = client.get("/api/servers/idle-01/loads")
        assert response.status_code == 200

        data = response.json()
        assert data["has_data"] is False
        assert "No update information" in data["message"]
        assert all(w["buckets"] == [] for w in data["windows"])

    def test_no_recent_samples(self, client):
        """测试：只有窗口外的旧样本"""
        client.post("/api/samples", json={"name": "web-01", "cpu": 1.0, "mem": 1.0, "time": iso_ago(hours=2)})

        data = client.get("/api/servers/web-01/loads", params={"window": "60m:1m"}).json()
        assert data["has_data"] is True
        assert data["windows"][0]["buckets"] == []
        assert "No recent samples" in data["message"]

    @pytest.mark.parametrize("window", ["60m:7m", "60m", "1h:0m", "bogus"])
    def test_invalid_window(self, client, window):
        """测试：非法窗口返回 400"""
        client.post("/api/samples", json={"name": "web-01", "cpu": 1.0, "mem": 1.0})

        response = client.get("/api/servers/web-01/loads", params={"window": window})
        assert response.status_code == 400

    def test_list_servers(self, client):
        """测试：服务器列表"""
        for name in ("web-02", "web-01"):
            client.post("/api/samples", json={"name": name, "cpu": 1.0, "mem": 1.0})

        response = client.get("/api/servers")
        assert response.status_code == 200
        assert response.json() == ["web-01", "web-02"]


class TestHealth:
    """健康检查测试"""

    def test_health(self, client):
        client.post("/api/samples", json={"name": "web-01", "cpu": 1.0, "mem": 1.0})

        response = client.get("/api/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "ok"
        assert data["entities"] == 1
        assert data["samples"] == 1


class TestLegacyEndpoints:
    """兼容端点测试"""

    def test_update_and_get(self, client):
        """测试：旧版上报与纯文本查询"""
        response = client.post("/update", json={"name": "web-01", "cpu": 10.0, "mem": 50.0, "time": iso_ago(seconds=40)})
        assert response.status_code == 200
        client.post("/update", json={"name": "web-01", "cpu": 20.0, "mem": 60.0, "time": iso_ago(seconds=10)})

        response = client.get("/get/web-01")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == (
            "Averages over the Last Hour: Memory: [55], CPU: [15]. "
            "Last 24 Hours: Memory: [55], CPU: [15]"
        )

    def test_get_empty_history(self, client, monitor):
        """测试：已知但无样本"""
        monitor.store.get_or_create("idle-01")

        response = client.get("/get/idle-01")
        assert response.status_code == 200
        assert response.text == "No update information for server idle-01 found."

    def test_get_unknown(self, client):
        """测试：未知服务器返回纯文本 404"""
        response = client.get("/get/ghost")
        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "No server information found for 'ghost'."

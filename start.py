"""一键启动困倦检测 Web 服务"""

import logging
import os
import sys

# 确保工作目录为脚本所在目录
os.chdir(os.path.dirname(os.path.abspath(__file__)))

# 添加项目根目录到 sys.path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

REQUIRED_PACKAGES = [
    ("flask", "flask"),
    ("opencv-python", "cv2"),
    ("mediapipe", "mediapipe"),
    ("numpy", "numpy"),
]


def find_missing_dependencies():
    """返回未安装的依赖包名列表"""
    missing = []
    for pkg, import_name in REQUIRED_PACKAGES:
        try:
            __import__(import_name)
        except ImportError:
            missing.append(pkg)
    return missing


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)-25s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    missing = find_missing_dependencies()
    if missing:
        print("缺少以下依赖，请先安装: pip install " + " ".join(missing))
        sys.exit(1)

    print("=" * 50)
    print("  困倦检测系统 - 启动中...")
    print("  访问地址: http://localhost:5000/api/data")
    print("  按 Ctrl+C 停止服务")
    print("=" * 50)

    from web_app import app
    app.run(host="0.0.0.0", port=5000, debug=False, threaded=True)

"""catalogkit - 远程目录条目解析与依赖树构建"""

__version__ = "0.1.0"

"""
学校文档生成系统 - 后端核心模块

模块结构：
- config/     配置加载与文档规范解析
- models/     数据模型定义
- forms/      表单校验与分步导航
- render/     可视树渲染/样式/派生字段/预览HTML
- export/     位图捕获与PDF编码
- catalog/    模板目录（远端+内置）与生成记录
- pipeline/   会话与导出状态机
"""

__version__ = "0.1.0"

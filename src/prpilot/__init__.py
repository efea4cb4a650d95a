"""prpilot — マルチエージェント PR/MR レビューツール。"""

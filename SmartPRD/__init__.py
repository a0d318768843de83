"""SmartPRD: сервис для работы с PRD (Product Requirements Document) и
стейкхолдерами проекта.

Основные задачи пакета:
- Загрузка PRD (хранение файла, извлечение текста из PDF/DOCX/TXT).
- Генерация выжимок PRD под роль каждого стейкхолдера через LLM.
- Ревью сгенерированного текста PM‑ом и отправка стейкхолдерам.
- Учёт вопросов/ответов стейкхолдеров и их статусов.

Пакет включает FastAPI‑приложение, сервисы (tailoring/review/jobs/markdown/
metrics/storage/extraction), инфраструктуру (db/settings/logging/auth/errors)
и модели (ORM и Pydantic).
"""

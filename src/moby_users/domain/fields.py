"""Airtable column names used by the application tables."""

# Legacy payroll table (Nomina activa).
LEGACY_EMAIL = "Correo MOBY (from Datos Personales)"
LEGACY_ONBOARDING_DATE = "Fecha de Alta (from Datos Personales)"
LEGACY_PROJECT_LINKS = "Capacity"

# Legacy projects table.
LEGACY_PROJECT_NAME = "Proyectos"
LEGACY_PROJECT_CLIENT = "Cliente (from Oportunidades) (de Proyectos)"
LEGACY_PROJECT_START = "Fecha de Asginacion"
LEGACY_PROJECT_END = "Fecha de Baja Servicio"

# App users table.
USER_EMAIL = "Correo Moby"
USER_NAME = "Nombre"
USER_LAST_NAME = "Apellido"
USER_PICTURE_URL = "Foto de Perfil URL"
USER_PROVINCE = "Provincia"
USER_LOCALITY = "Localidad"
USER_ONBOARDING_DATE = "Fecha de Alta"
USER_CURRENT_TECH = "Tecnologia Actual"
USER_SIGNATURE_URL = "Firma URL"
USER_IS_TALENT_PARTNER = "Es Talent Partner?"
USER_IS_REFERENT = "Es Referente?"
USER_REFERENT = "Referente"
USER_TALENT_PARTNER = "Talent Partner"
USER_PROJECTS = "Proyectos"

# App projects table.
PROJECT_NAME = "Nombre"
PROJECT_START = "Fecha inicio"
PROJECT_END = "Fecha cierre"
PROJECT_CLIENT = "Cliente"
PROJECT_USERS = "Usuarios MobyApp"

# Clients table.
CLIENT_NAME = "Nombre"

USER_REFERENCE_FIELDS = [
    USER_NAME,
    USER_LAST_NAME,
    USER_EMAIL,
    USER_PICTURE_URL,
    USER_PROVINCE,
    USER_LOCALITY,
    USER_CURRENT_TECH,
    USER_IS_REFERENT,
    USER_IS_TALENT_PARTNER,
]

USER_SUMMARY_FIELDS = [USER_EMAIL, USER_NAME, USER_LAST_NAME]

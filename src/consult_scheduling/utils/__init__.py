# Pure helpers shared by the scheduling services

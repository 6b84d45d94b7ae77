from django.urls import path

from . import views

app_name = "multas"

urlpatterns = [
    path("", views.dashboard, name="dashboard"),
    path("nova/", views.create, name="create"),
    path("atividades/", views.atividades, name="atividades"),
    path("<int:pk>/", views.detail, name="detail"),
    path("<int:pk>/editar/", views.update, name="update"),
    path("<int:pk>/excluir/", views.delete, name="delete"),
    path("<int:pk>/acao/<str:transicao>/", views.acao, name="acao"),
]
